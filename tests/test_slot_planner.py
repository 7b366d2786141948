"""Tests for slot planning and booking validation."""

import pytest
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from realty_scheduler.scheduling import (
    Appointment,
    AppointmentMode,
    AppointmentStatus,
    BookingForm,
    BookingValidationError,
    Lead,
    SlotPlanner,
    TourCapacityError,
    TourStop,
    TourStopList,
    Unit,
    ValidationFailure,
)
from realty_scheduler.view.labels import VALIDATION_LABELS

CANCUN = ZoneInfo("America/Cancun")
NEW_YORK = ZoneInfo("America/New_York")


@pytest.fixture
def planner():
    """Planner working in Cancun time."""
    return SlotPlanner(CANCUN)


@pytest.fixture
def units():
    return {
        "u1": Unit("u1", "A-101", "c1", "Aldea Zama"),
        "u2": Unit("u2", "B-204", "c1", "Aldea Zama"),
        "u3": Unit("u3", "PH-3", "c2", "Selvanova"),
    }


def individual_form(**overrides) -> BookingForm:
    form = BookingForm(day=date(2024, 3, 10), time="10:00", lead_id="l1", unit_id="u1")
    for key, value in overrides.items():
        setattr(form, key, value)
    return form


def tour_form(*stops) -> BookingForm:
    form = BookingForm(day=date(2024, 3, 10), time="09:00", lead_id="l1", mode=AppointmentMode.TOUR)
    for condominium_id, unit_id in stops:
        form.tour_stops.append(TourStop(unit_id=unit_id, condominium_id=condominium_id))
    return form


class TestValidation:
    """Tests for the ordered validation rules."""

    def test_valid_individual(self, planner):
        assert planner.validate(individual_form()) is None

    def test_missing_lead(self, planner):
        """Lead is checked before anything else."""
        form = individual_form(lead_id="", unit_id="")
        assert planner.validate(form) == ValidationFailure.MISSING_LEAD

    def test_missing_unit(self, planner):
        assert planner.validate(individual_form(unit_id="")) == ValidationFailure.MISSING_UNIT

    def test_empty_tour(self, planner):
        assert planner.validate(tour_form()) == ValidationFailure.EMPTY_TOUR

    def test_incomplete_stop(self, planner):
        form = tour_form(("c1", "u1"), ("", "u2"))
        assert planner.validate(form) == ValidationFailure.INCOMPLETE_TOUR_STOP

    def test_blank_stop_is_incomplete(self, planner):
        form = tour_form(("c1", "u1"))
        form.tour_stops.append()
        assert planner.validate(form) == ValidationFailure.INCOMPLETE_TOUR_STOP

    def test_duplicate_unit(self, planner):
        """Two stops on the same unit are rejected."""
        form = tour_form(("c1", "u1"), ("c1", "u1"))
        failure = planner.validate(form)

        assert failure == ValidationFailure.DUPLICATE_TOUR_UNIT
        assert failure.message == "duplicate unit in tour"

    def test_english_labels_are_failure_messages(self):
        """The page shows the same English text the error carries."""
        for failure in ValidationFailure:
            assert VALIDATION_LABELS[failure]["en"] == failure.message
            assert VALIDATION_LABELS[failure]["es"]

    def test_invalid_time(self, planner):
        assert planner.validate(individual_form(time="25:00")) == ValidationFailure.INVALID_TIME
        assert planner.validate(individual_form(time="10am")) == ValidationFailure.INVALID_TIME

    def test_missing_day(self, planner):
        assert planner.validate(individual_form(day=None)) == ValidationFailure.INVALID_TIME

    def test_build_request_raises_typed_error(self, planner):
        with pytest.raises(BookingValidationError) as exc_info:
            planner.build_request(tour_form(("c1", "u1"), ("c2", "u1")))

        assert exc_info.value.failure == ValidationFailure.DUPLICATE_TOUR_UNIT

    def test_individual_unit_ignored_in_tour_mode(self, planner):
        form = tour_form(("c1", "u1"))
        form.unit_id = ""
        assert planner.validate(form) is None


class TestSlotDerivation:
    """Tests for end times and per-stop offsets."""

    def test_individual_is_sixty_minutes(self, planner):
        """2024-03-10 10:00 ends at 11:00."""
        plan = planner.plan(individual_form())

        assert plan.start == datetime(2024, 3, 10, 10, 0, tzinfo=CANCUN)
        assert plan.end == datetime(2024, 3, 10, 11, 0, tzinfo=CANCUN)
        assert plan.duration_minutes == 60
        assert len(plan.slots) == 1

    def test_three_stop_tour(self, planner):
        """Stops at 09:00, 09:30, 10:00 and the tour ends at 10:30."""
        plan = planner.plan(tour_form(("c1", "u1"), ("c1", "u2"), ("c2", "u3")))

        assert [s.start.strftime("%H:%M") for s in plan.slots] == ["09:00", "09:30", "10:00"]
        assert [s.offset_minutes for s in plan.slots] == [0, 30, 60]
        assert [s.unit_id for s in plan.slots] == ["u1", "u2", "u3"]
        assert plan.end.strftime("%H:%M") == "10:30"

    @pytest.mark.parametrize("count", [1, 2, 3])
    def test_tour_length_scales_with_stops(self, planner, count):
        start = datetime(2024, 3, 10, 9, 0, tzinfo=CANCUN)
        plan = planner.plan_slots(AppointmentMode.TOUR, start, count)

        assert plan.end - plan.start == timedelta(minutes=30 * count)
        for i, slot in enumerate(plan.slots):
            assert slot.start - start == timedelta(minutes=30 * i)

    def test_plan_slots_rejects_oversized_tour(self, planner):
        start = datetime(2024, 3, 10, 9, 0, tzinfo=CANCUN)
        with pytest.raises(ValueError):
            planner.plan_slots(AppointmentMode.TOUR, start, 4)

    def test_late_tour_crosses_midnight(self, planner):
        form = tour_form(("c1", "u1"), ("c1", "u2"))
        form.time = "23:30"
        plan = planner.plan(form)

        assert plan.end == datetime(2024, 3, 11, 0, 30, tzinfo=CANCUN)


class TestDaylightSaving:
    """Windows keep their real length when the viewer zone changes offset."""

    def _elapsed(self, start, end):
        return end.astimezone(timezone.utc) - start.astimezone(timezone.utc)

    def test_individual_across_fall_back(self):
        """01:30 EDT plus one hour is 01:30 EST on 2024-11-03."""
        planner = SlotPlanner(NEW_YORK)
        form = individual_form(day=date(2024, 11, 3), time="01:30")

        plan = planner.plan(form)

        assert self._elapsed(plan.start, plan.end) == timedelta(minutes=60)
        assert plan.duration_minutes == 60
        assert plan.end.strftime("%H:%M") == "01:30"

    def test_tour_offsets_across_fall_back(self):
        planner = SlotPlanner(NEW_YORK)
        form = tour_form(("c1", "u1"), ("c1", "u2"), ("c2", "u3"))
        form.day = date(2024, 11, 3)
        form.time = "01:00"

        plan = planner.plan(form)

        assert [self._elapsed(plan.start, s.start) for s in plan.slots] == [
            timedelta(0), timedelta(minutes=30), timedelta(minutes=60),
        ]
        assert [s.offset_minutes for s in plan.slots] == [0, 30, 60]
        assert self._elapsed(plan.start, plan.end) == timedelta(minutes=90)

    def test_individual_across_spring_forward(self):
        planner = SlotPlanner(NEW_YORK)
        plan = planner.plan(individual_form(day=date(2024, 3, 10), time="01:30"))

        assert plan.end.strftime("%H:%M") == "03:30"
        assert plan.duration_minutes == 60

    def test_request_window_is_sixty_minutes(self):
        request = SlotPlanner(NEW_YORK).build_request(individual_form(day=date(2024, 11, 3), time="01:30"))
        assert self._elapsed(request.date, request.end_time) == timedelta(minutes=60)


class TestBuildRequest:
    """Tests for the normalized create request."""

    def test_individual_copies_lead_and_unit_labels(self, planner, units):
        form = individual_form(lead_id="")
        form.select_lead(Lead("l1", "María", "López", "+52 984 100 2000", "maria@example.com"))
        form.notes = "Bring keys"

        request = planner.build_request(form, units)

        assert request.mode == AppointmentMode.INDIVIDUAL
        assert request.client_name == "María López"
        assert request.client_phone == "+52 984 100 2000"
        assert request.client_email == "maria@example.com"
        assert request.unit_id == "u1"
        assert request.condominium_name == "Aldea Zama"
        assert request.unit_number == "A-101"
        assert request.tour_stops == []
        assert request.end_time - request.date == timedelta(minutes=60)
        assert request.date.astimezone(timezone.utc).hour == 15

    def test_tour_keeps_stop_order(self, planner, units):
        form = tour_form(("c2", "u3"), ("c1", "u1"))
        request = planner.build_request(form, units)

        assert request.unit_id is None
        assert [s.unit_id for s in request.tour_stops] == ["u3", "u1"]
        assert request.tour_stops[0].condominium_name == "Selvanova"
        assert request.end_time - request.date == timedelta(minutes=60)

    def test_unknown_unit_has_no_labels(self, planner):
        request = planner.build_request(individual_form(unit_id="u404"))
        assert request.unit_id == "u404"
        assert request.condominium_name is None

    def test_switch_mode_drops_other_selection(self):
        form = individual_form()
        form.switch_mode(AppointmentMode.TOUR)
        assert form.unit_id == ""

        form.tour_stops.append(TourStop("u1", "c1"))
        form.switch_mode(AppointmentMode.INDIVIDUAL)
        assert len(form.tour_stops) == 0


class TestTourStopList:
    """Tests for the capped, ordered stop list."""

    def test_fourth_stop_rejected(self):
        stops = TourStopList()
        for i in range(3):
            stops.append(TourStop(f"u{i}", "c1"))

        with pytest.raises(TourCapacityError):
            stops.append(TourStop("u9", "c1"))
        assert len(stops) == 3
        assert stops.is_full

    def test_insert_remove_and_move(self):
        stops = TourStopList([TourStop("u1", "c1"), TourStop("u3", "c1")])
        stops.insert_at(1, TourStop("u2", "c1"))
        assert [s.unit_id for s in stops] == ["u1", "u2", "u3"]

        stops.move(2, 0)
        assert [s.unit_id for s in stops] == ["u3", "u1", "u2"]

        removed = stops.remove_at(1)
        assert removed.unit_id == "u1"
        assert [s.unit_id for s in stops] == ["u3", "u2"]

    def test_insert_out_of_range(self):
        stops = TourStopList()
        with pytest.raises(IndexError):
            stops.insert_at(2)

    def test_update_at(self):
        stops = TourStopList()
        stops.append()
        stops.update_at(0, condominium_id="c1", unit_id="u1", notes="Pool view")

        assert stops[0].is_complete
        assert stops[0].notes == "Pool view"
        with pytest.raises(AttributeError):
            stops.update_at(0, price=1)

    def test_taken_unit_ids(self):
        stops = TourStopList([TourStop("u1", "c1"), TourStop("u2", "c1")])
        assert stops.taken_unit_ids() == {"u1", "u2"}
        assert stops.taken_unit_ids(except_index=0) == {"u2"}


class TestAdvisoryOverlaps:
    """Overlaps are reported, never enforced."""

    def _appointment(self, apt_id, hour, minutes=60, status=AppointmentStatus.CONFIRMED):
        start = datetime(2024, 3, 10, hour, 0, tzinfo=CANCUN)
        return Appointment(
            id=apt_id, date=start, end_time=start + timedelta(minutes=minutes),
            mode=AppointmentMode.INDIVIDUAL, status=status, client_name="Someone",
        )

    def test_reports_intersecting_appointments(self, planner):
        existing = [
            self._appointment("a", 10),
            self._appointment("b", 11),
            self._appointment("c", 9, minutes=90),
            self._appointment("d", 10, status=AppointmentStatus.CANCELLED),
        ]
        plan = planner.plan(individual_form())

        overlaps = planner.advisory_overlaps(plan, existing)

        assert [a.id for a in overlaps] == ["c", "a"]

    def test_overlap_does_not_block_request(self, planner):
        planner.advisory_overlaps(planner.plan(individual_form()), [self._appointment("a", 10)])
        request = planner.build_request(individual_form())
        assert request.unit_id == "u1"
