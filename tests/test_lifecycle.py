"""Tests for the appointment lifecycle, cancellation and restricted views."""

import pytest
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from realty_scheduler.gateway import GatewayError, InMemoryBookingGateway
from realty_scheduler.scheduling import (
    Appointment,
    AppointmentMode,
    AppointmentStatus,
    CancellationFlow,
    CancelNotAllowedError,
    TourStop,
    cancel_offered,
    detail_view,
)
from realty_scheduler.scheduling.lifecycle import CancelStep, can_transition, check_server_transition, is_terminal
from realty_scheduler.view import render_appointment, to_text

CANCUN = ZoneInfo("America/Cancun")
START = datetime(2024, 3, 10, 10, 0, tzinfo=CANCUN)


def make_appointment(apt_id="apt-1", status=AppointmentStatus.CONFIRMED, **kwargs) -> Appointment:
    defaults = dict(
        id=apt_id,
        date=START,
        end_time=START + timedelta(minutes=60),
        mode=AppointmentMode.INDIVIDUAL,
        status=status,
        client_name="María López",
        client_phone="+52 984 100 2000",
        client_email="maria@example.com",
        notes="Prefers mornings",
        condominium_name="Aldea Zama",
        unit_number="A-101",
        can_cancel=True,
    )
    defaults.update(kwargs)
    return Appointment(**defaults)


@pytest.fixture
def gateway():
    return InMemoryBookingGateway([
        make_appointment("apt-1"),
        make_appointment("apt-2", AppointmentStatus.COMPLETED),
        make_appointment("apt-3", can_cancel=False),
    ])


class TestTransitions:
    """Tests for allowed status moves."""

    @pytest.mark.parametrize("current,target", [
        (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED),
        (AppointmentStatus.PENDING, AppointmentStatus.COMPLETED),
        (AppointmentStatus.PENDING, AppointmentStatus.CANCELLED),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.CONFIRMED),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED),
        (AppointmentStatus.CANCELLED, AppointmentStatus.PENDING),
        (AppointmentStatus.CANCELLED, AppointmentStatus.CONFIRMED),
        (AppointmentStatus.COMPLETED, AppointmentStatus.CONFIRMED),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.PENDING),
    ])
    def test_rejected(self, current, target):
        assert not can_transition(current, target)

    def test_terminal_states(self):
        assert is_terminal(AppointmentStatus.COMPLETED)
        assert is_terminal(AppointmentStatus.CANCELLED)
        assert not is_terminal(AppointmentStatus.PENDING)

    def test_unexpected_server_move_is_logged(self, caplog):
        previous = make_appointment(status=AppointmentStatus.CANCELLED)
        current = make_appointment(status=AppointmentStatus.CONFIRMED)

        check_server_transition(previous, current)
        assert "keeping server value" in caplog.text

    def test_expected_server_move_is_quiet(self, caplog):
        previous = make_appointment(status=AppointmentStatus.PENDING)
        current = make_appointment(status=AppointmentStatus.CONFIRMED)

        check_server_transition(previous, current)
        assert "keeping server value" not in caplog.text


class TestCancelOffered:
    """The cancel control follows the server's flags."""

    def test_offered_when_flag_set(self):
        assert cancel_offered(make_appointment())
        assert cancel_offered(make_appointment(status=AppointmentStatus.PENDING))

    def test_not_offered_without_flag(self):
        assert not cancel_offered(make_appointment(can_cancel=False))

    def test_not_offered_for_terminal(self):
        assert not cancel_offered(make_appointment(status=AppointmentStatus.COMPLETED))
        assert not cancel_offered(make_appointment(status=AppointmentStatus.CANCELLED))


class TestCancellationFlow:
    """Tests for the two-step cancel."""

    def test_confirm_cancels(self, gateway):
        flow = CancellationFlow(gateway.fetch()[0], gateway)
        flow.request()
        assert flow.step == CancelStep.CONFIRMING

        updated = flow.confirm()

        assert flow.step == CancelStep.DONE
        assert updated.status == AppointmentStatus.CANCELLED
        assert updated.cancellation_reason == "Cancelled by seller"
        assert gateway.appointments["apt-1"].status == AppointmentStatus.CANCELLED

    def test_confirm_requires_request(self, gateway):
        flow = CancellationFlow(gateway.fetch()[0], gateway)
        with pytest.raises(CancelNotAllowedError):
            flow.confirm()
        assert "cancel" not in gateway.calls

    def test_abort_sends_nothing(self, gateway):
        flow = CancellationFlow(gateway.fetch()[0], gateway)
        flow.request()
        flow.abort()

        assert flow.step == CancelStep.IDLE
        assert "cancel" not in gateway.calls

    def test_request_refused_for_completed(self, gateway):
        appointment = next(a for a in gateway.fetch() if a.id == "apt-2")
        with pytest.raises(CancelNotAllowedError):
            CancellationFlow(appointment, gateway).request()

    def test_failure_keeps_status(self, gateway):
        appointment = gateway.fetch()[0]
        gateway.reject_next("Appointment already started", status_code=409)
        flow = CancellationFlow(appointment, gateway)
        flow.request()

        with pytest.raises(GatewayError):
            flow.confirm("Client asked")

        assert flow.step == CancelStep.FAILED
        assert flow.error == "Appointment already started"
        assert appointment.status == AppointmentStatus.CONFIRMED
        assert gateway.appointments["apt-1"].status == AppointmentStatus.CONFIRMED

    def test_server_refuses_without_permission(self, gateway):
        """The server stays the authority even if the client thinks it may cancel."""
        appointment = make_appointment("apt-3")
        flow = CancellationFlow(appointment, gateway)
        flow.request()

        with pytest.raises(GatewayError) as exc_info:
            flow.confirm()
        assert exc_info.value.status_code == 403


class TestDetailView:
    """Restricted appointments never expose contact details or notes."""

    def test_full_view(self):
        view = detail_view(make_appointment())

        assert view.client_phone == "+52 984 100 2000"
        assert view.client_email == "maria@example.com"
        assert view.notes == "Prefers mornings"
        assert view.cancel_offered

    def test_restricted_view_masks_fields(self):
        view = detail_view(make_appointment(is_restricted=True, can_cancel=False))

        assert view.client_name == "María López"
        assert view.client_phone is None
        assert view.client_email is None
        assert view.notes is None
        assert not view.cancel_offered

    def test_tour_stops_with_times(self):
        stops = [
            TourStop("u1", "c1", "Pool view", "Aldea Zama", "A-101"),
            TourStop("u3", "c2", "", "Selvanova", "PH-3"),
        ]
        view = detail_view(make_appointment(mode=AppointmentMode.TOUR, tour_stops=stops))

        assert [s.label for s in view.stops] == ["Aldea Zama - A-101", "Selvanova - PH-3"]
        assert view.stops[1].start == START + timedelta(minutes=30)
        assert view.stops[0].notes == "Pool view"
        assert view.stops[1].notes is None

    def test_stop_times_across_fall_back(self):
        """Stops stay 30 real minutes apart when the clock goes back."""
        new_york = ZoneInfo("America/New_York")
        start = datetime(2024, 11, 3, 1, 0, tzinfo=new_york)
        stops = [TourStop("u1", "c1"), TourStop("u2", "c1"), TourStop("u3", "c2")]
        appointment = make_appointment(
            mode=AppointmentMode.TOUR, tour_stops=stops,
            date=start, end_time=start + timedelta(hours=2),
        )

        view = detail_view(appointment)

        elapsed = [s.start.astimezone(timezone.utc) - start.astimezone(timezone.utc) for s in view.stops]
        assert elapsed == [timedelta(0), timedelta(minutes=30), timedelta(minutes=60)]

    def test_restricted_tour_hides_stop_notes(self):
        stops = [TourStop("u1", "c1", "Owner lives here", "Aldea Zama", "A-101")]
        view = detail_view(make_appointment(mode=AppointmentMode.TOUR, tour_stops=stops, is_restricted=True))

        assert view.stops[0].notes is None

    def test_rendered_restricted_view_has_no_contact(self):
        appointment = make_appointment(is_restricted=True, can_cancel=False)
        text = to_text(render_appointment(appointment, "en", CANCUN))

        assert "María López" in text
        assert "Limited view" in text
        assert "+52 984 100 2000" not in text
        assert "maria@example.com" not in text
        assert "Prefers mornings" not in text

    def test_rendered_full_view(self):
        text = to_text(render_appointment(make_appointment(), "en", CANCUN))

        assert "+52 984 100 2000" in text
        assert "10:00 - 11:00" in text
        assert "Cancel Appointment" in text
