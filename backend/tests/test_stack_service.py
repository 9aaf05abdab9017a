"""Stack sequencer: finalization, adapter spools, removal, reorder and read-back."""

from collections import Counter

import pytest
from sqlalchemy import delete, text

from bop_stack.exceptions import (
    AmbiguousSelectionError,
    DataIntegrityError,
    NoMatchError,
    NotFoundError,
    PreconditionViolationError,
    UnknownPartTypeError,
)
from bop_stack.models import CompositeDraft, FlangeSpec, PartSelection, StackOrder
from bop_stack.schemas.flange import FlangeFilters
from bop_stack.services.stack_service import (
    add_part_to_stack,
    cancel_composite,
    complete_composite_side_2,
    create_stack,
    delete_stack,
    get_stack_by_id,
    get_stack_with_parts,
    remove_part_from_stack,
    reorder_stack,
    start_composite_side_1,
)
from bop_stack.utils.part_rules import get_behavior

ANNULAR_A = FlangeFilters(pressure=5000, flange_size="13-5/8 5M", bolt_count=8)
ANNULAR_B = FlangeFilters(pressure=5000, flange_size="13-5/8 5M", bolt_count=12)
SPEC_D = FlangeFilters(flange_size="13-5/8 10M")
SPEC_F = FlangeFilters(flange_size="7-1/16 3M")


@pytest.fixture
def stack(db, catalog):
    return create_stack(db, "Rig 12")


def positions(db, stack_id):
    _, parts = get_stack_with_parts(db, stack_id)
    return [(part.id, part.order.position) for part in parts]


def add_spool(db, stack_id, side1=SPEC_F, side2=SPEC_D):
    draft = start_composite_side_1(db, stack_id, side1)
    return complete_composite_side_2(db, stack_id, draft.group_id, side2)


# =============================================================================
# STACK LIFECYCLE
# =============================================================================

class TestStackLifecycle:
    def test_default_title(self, db):
        assert create_stack(db).title == "B.O.P Stack"
        assert create_stack(db, "   ").title == "B.O.P Stack"

    def test_missing_stack(self, db):
        assert get_stack_by_id(db, 999) is None
        with pytest.raises(NotFoundError):
            get_stack_with_parts(db, 999)

    def test_delete_cascades(self, db, stack):
        add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        add_spool(db, stack.id)
        start_composite_side_1(db, stack.id, SPEC_F)

        delete_stack(db, stack.id)

        assert get_stack_by_id(db, stack.id) is None
        assert db.query(PartSelection).count() == 0
        assert db.query(StackOrder).count() == 0
        assert db.query(CompositeDraft).count() == 0
        # The catalog is untouched
        assert db.query(FlangeSpec).count() == 6

    def test_delete_missing_stack(self, db):
        with pytest.raises(NotFoundError):
            delete_stack(db, 42)


# =============================================================================
# FINALIZE + APPEND
# =============================================================================

class TestAddPart:
    def test_appends_at_increasing_positions(self, db, stack):
        first = add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        second = add_part_to_stack(db, stack.id, "ROTATING_HEAD", SPEC_D)
        third = add_part_to_stack(db, stack.id, "MUD_CROSS", FlangeFilters(pressure=10000))

        assert positions(db, stack.id) == [(first.id, 0), (second.id, 1), (third.id, 2)]

    def test_pressure_part_carries_its_pressure(self, db, stack, catalog):
        part = add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        assert part.pressure_value == 5000
        assert part.flange_spec_id == catalog["A"].id
        assert part.spool_group_id is None

    def test_pressure_taken_from_spec_when_not_chosen(self, db, stack):
        part = add_part_to_stack(db, stack.id, "DOUBLE_RAMS", FlangeFilters(flange_size="13-5/8 10M"))
        assert part.pressure_value == 10000

    def test_part_not_offered_by_the_flange_is_no_match(self, db, stack):
        # 21-1/4 2M lists 0 under Mud Cross
        with pytest.raises(NoMatchError):
            add_part_to_stack(db, stack.id, "MUD_CROSS", FlangeFilters(flange_size="21-1/4 2M"))
        assert db.query(PartSelection).count() == 0

    def test_geometry_part_never_carries_pressure(self, db, stack):
        part = add_part_to_stack(db, stack.id, "ANACONDA_LINES", FlangeFilters(pressure=5000, flange_size="11 5M"))
        assert part.pressure_value is None

    def test_ambiguous_selection_adds_nothing(self, db, stack):
        with pytest.raises(AmbiguousSelectionError) as exc_info:
            add_part_to_stack(db, stack.id, "ANNULAR", FlangeFilters(pressure=5000, flange_size="13-5/8 5M"))
        assert exc_info.value.varying_attributes == ["bolt_count"]
        assert db.query(PartSelection).count() == 0

    def test_no_match(self, db, stack):
        with pytest.raises(NoMatchError):
            add_part_to_stack(db, stack.id, "ANNULAR", FlangeFilters(pressure=7500))

    def test_unknown_part_type(self, db, stack):
        with pytest.raises(UnknownPartTypeError):
            add_part_to_stack(db, stack.id, "BLIND_RAM", SPEC_D)

    def test_spool_side_needs_the_spool_flow(self, db, stack):
        with pytest.raises(PreconditionViolationError):
            add_part_to_stack(db, stack.id, "ADAPTER_SPOOL_SIDE", SPEC_D)
        assert db.query(PartSelection).count() == 0

    def test_missing_stack(self, db, catalog):
        with pytest.raises(NotFoundError):
            add_part_to_stack(db, 999, "ANNULAR", ANNULAR_A)

    def test_only_pressure_parts_carry_a_pressure(self, db, stack):
        add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        add_part_to_stack(db, stack.id, "SINGLE_RAM", FlangeFilters(pressure=5000))
        add_part_to_stack(db, stack.id, "ROTATING_HEAD", SPEC_F)
        add_spool(db, stack.id)

        for part in db.query(PartSelection).all():
            behavior = get_behavior(part.part_type)
            assert (part.pressure_value is not None) == behavior.is_pressure_driven
            assert (part.spool_group_id is not None) == behavior.is_spool


# =============================================================================
# ADAPTER SPOOLS
# =============================================================================

class TestAdapterSpools:
    def test_sides_resolve_independently(self, db, stack, catalog):
        draft = start_composite_side_1(db, stack.id, SPEC_F)
        assert draft.side1_spec_id == catalog["F"].id
        assert db.query(PartSelection).count() == 0

        side1, side2 = complete_composite_side_2(db, stack.id, draft.group_id, SPEC_D)

        assert side1.flange_spec_id == catalog["F"].id
        assert side2.flange_spec_id == catalog["D"].id
        assert side1.spool_group_id == side2.spool_group_id == draft.group_id
        assert side1.pressure_value is None and side2.pressure_value is None
        assert db.query(CompositeDraft).count() == 0

    def test_spool_is_appended_after_existing_parts(self, db, stack):
        annular = add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        side1, side2 = add_spool(db, stack.id)
        assert positions(db, stack.id) == [(annular.id, 0), (side1.id, 1), (side2.id, 2)]

    def test_same_spec_on_both_sides(self, db, stack):
        side1, side2 = add_spool(db, stack.id, SPEC_D, SPEC_D)
        assert side1.flange_spec_id == side2.flange_spec_id

    def test_every_group_has_exactly_two_sides(self, db, stack):
        add_spool(db, stack.id)
        add_spool(db, stack.id, SPEC_D, SPEC_F)
        groups = Counter(p.spool_group_id for p in db.query(PartSelection).all() if p.spool_group_id)
        assert len(groups) == 2
        assert set(groups.values()) == {2}

    def test_ambiguous_side_1_stores_no_draft(self, db, stack):
        with pytest.raises(AmbiguousSelectionError):
            start_composite_side_1(db, stack.id, FlangeFilters(bolt_count=8))
        assert db.query(CompositeDraft).count() == 0

    def test_failed_side_2_keeps_draft_for_retry(self, db, stack):
        draft = start_composite_side_1(db, stack.id, SPEC_F)

        with pytest.raises(NoMatchError):
            complete_composite_side_2(db, stack.id, draft.group_id, FlangeFilters(bolt_count=999))
        assert db.query(PartSelection).count() == 0
        assert db.query(CompositeDraft).count() == 1

        parts = complete_composite_side_2(db, stack.id, draft.group_id, SPEC_D)
        assert len(parts) == 2

    def test_unknown_draft(self, db, stack):
        with pytest.raises(NotFoundError):
            complete_composite_side_2(db, stack.id, "no-such-group", SPEC_D)

    def test_draft_belongs_to_its_stack(self, db, stack):
        other = create_stack(db, "Other")
        draft = start_composite_side_1(db, stack.id, SPEC_F)
        with pytest.raises(NotFoundError):
            complete_composite_side_2(db, other.id, draft.group_id, SPEC_D)

    def test_cancel(self, db, stack):
        draft = start_composite_side_1(db, stack.id, SPEC_F)
        cancel_composite(db, stack.id, draft.group_id)
        assert db.query(CompositeDraft).count() == 0
        with pytest.raises(NotFoundError):
            cancel_composite(db, stack.id, draft.group_id)


# =============================================================================
# REMOVE
# =============================================================================

class TestRemove:
    def test_remove_keeps_other_positions(self, db, stack):
        first = add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        middle = add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_B)
        last = add_part_to_stack(db, stack.id, "ROTATING_HEAD", SPEC_D)

        assert remove_part_from_stack(db, stack.id, middle.id) == [middle.id]
        assert positions(db, stack.id) == [(first.id, 0), (last.id, 2)]

        appended = add_part_to_stack(db, stack.id, "ROTATING_HEAD", SPEC_F)
        assert positions(db, stack.id)[-1] == (appended.id, 3)

    def test_removing_one_spool_side_removes_both(self, db, stack):
        annular = add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        side1, side2 = add_spool(db, stack.id)

        removed = remove_part_from_stack(db, stack.id, side2.id)

        assert sorted(removed) == sorted([side1.id, side2.id])
        assert positions(db, stack.id) == [(annular.id, 0)]
        assert db.query(StackOrder).count() == 1

    def test_part_of_another_stack(self, db, stack):
        part = add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        other = create_stack(db, "Other")
        with pytest.raises(NotFoundError):
            remove_part_from_stack(db, other.id, part.id)


# =============================================================================
# REORDER
# =============================================================================

class TestReorder:
    def test_swap_then_reject_partial_order(self, db, stack):
        id1 = add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A).id
        id2 = add_part_to_stack(db, stack.id, "ROTATING_HEAD", SPEC_D).id

        reorder_stack(db, stack.id, [id2, id1])
        assert positions(db, stack.id) == [(id2, 0), (id1, 1)]

        with pytest.raises(PreconditionViolationError):
            reorder_stack(db, stack.id, [id1])
        assert positions(db, stack.id) == [(id2, 0), (id1, 1)]

    @pytest.mark.parametrize("bad_order", [
        lambda a, b, c: [a, b, b],
        lambda a, b, c: [a, b, c, 9999],
        lambda a, b, c: [a, b, 9999],
        lambda a, b, c: [],
    ])
    def test_non_permutations_change_nothing(self, db, stack, bad_order):
        ids = [
            add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A).id,
            add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_B).id,
            add_part_to_stack(db, stack.id, "ROTATING_HEAD", SPEC_D).id,
        ]
        before = positions(db, stack.id)

        with pytest.raises(PreconditionViolationError):
            reorder_stack(db, stack.id, bad_order(*ids))

        assert positions(db, stack.id) == before

    def test_reorder_closes_gaps(self, db, stack):
        a = add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A).id
        b = add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_B).id
        c = add_part_to_stack(db, stack.id, "ROTATING_HEAD", SPEC_D).id
        remove_part_from_stack(db, stack.id, b)

        reorder_stack(db, stack.id, [c, a])
        assert positions(db, stack.id) == [(c, 0), (a, 1)]

    def test_empty_stack_accepts_empty_order(self, db, stack):
        reorder_stack(db, stack.id, [])
        assert positions(db, stack.id) == []


# =============================================================================
# READ BACK
# =============================================================================

class TestGetStack:
    def test_parts_come_with_their_flange_spec(self, db, stack, catalog):
        add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        loaded, parts = get_stack_with_parts(db, stack.id)
        assert loaded.id == stack.id
        assert parts[0].flange_spec.ring_needed == "BX-160"

    def test_missing_flange_spec_is_a_data_integrity_fault(self, db, session_factory, stack, catalog):
        part = add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)

        # A dangling reference needs enforcement off; PRAGMA is ignored inside a transaction
        db.execute(text("PRAGMA foreign_keys=OFF"))
        db.execute(delete(FlangeSpec).where(FlangeSpec.id == part.flange_spec_id))
        db.commit()
        db.execute(text("PRAGMA foreign_keys=ON"))
        db.commit()

        fresh = session_factory()
        try:
            with pytest.raises(DataIntegrityError):
                get_stack_with_parts(fresh, stack.id)
        finally:
            fresh.close()
