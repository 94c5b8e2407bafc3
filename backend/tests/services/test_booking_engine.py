"""Booking Engine: creation rules, validation order, pricing and cancellation."""

from datetime import time, timedelta
from decimal import Decimal

import pytest

from tutorconnect.core.enums import BookingStatus, DayOfWeek, RoleName, VerificationState
from tutorconnect.core.exceptions import (
    AlreadyPastException,
    ForbiddenException,
    InvalidStateTransitionException,
    InvalidSubjectException,
    NotFoundException,
    OutsideAvailabilityException,
    SlotConflictException,
    TutorNotEligibleException,
    ValidationException,
)
from tutorconnect.core.timezone_utils import local_to_utc, utc_now
from tutorconnect.models.booking import Booking
from tutorconnect.schemas.booking import BookingCreate
from tutorconnect.services.booking_service import BookingService, calculate_price


@pytest.fixture
def service(db):
    return BookingService(db)


@pytest.fixture
def monday(next_weekday):
    return next_weekday(DayOfWeek.MONDAY)


def _request(tutor, start, minutes=60, subject="Mathematics", **extra):
    return BookingCreate(
        tutor_id=tutor.id,
        subject=subject,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        **extra,
    )


class TestCreateBooking:
    def test_price_is_prorated_from_hourly_rate(self, service, tutor, student, monday, utc_at):
        booking = service.create_booking(student, _request(tutor, utc_at(monday, 10), minutes=90))

        assert booking.status == BookingStatus.SCHEDULED.value
        assert booking.duration_minutes == 90
        assert booking.hourly_rate == Decimal("40.00")
        assert booking.total_price == Decimal("60.00")
        assert booking.end_time - booking.start_time == timedelta(minutes=90)

    def test_price_rounds_half_up_to_the_cent(self):
        assert calculate_price(Decimal("33.33"), 30) == Decimal("16.67")
        assert calculate_price(Decimal("25.00"), 120) == Decimal("50.00")

    def test_local_date_and_clock_time_use_tutor_timezone(
        self, service, make_tutor, student, monday
    ):
        tutor = make_tutor(
            timezone_name="America/New_York",
            availability={"Monday": [(time(9, 0), time(12, 0))]},
        )
        data = BookingCreate(
            tutor_id=tutor.id,
            subject="Mathematics",
            date=monday,
            start_time="10:00",
            duration_minutes=60,
        )

        booking = service.create_booking(student, data)

        expected_start = local_to_utc(monday, time(10, 0), "America/New_York")
        assert booking.start_time == expected_start
        assert booking.end_time == expected_start + timedelta(hours=1)

    def test_subject_match_is_case_insensitive_and_stored_canonically(
        self, service, tutor, student, monday, utc_at
    ):
        booking = service.create_booking(
            student, _request(tutor, utc_at(monday, 10), subject="  mathematics ")
        )

        assert booking.subject == "Mathematics"

    def test_unknown_tutor(self, service, tutor, student, monday, utc_at):
        data = _request(tutor, utc_at(monday, 10))
        data.tutor_id = "01HZZZZZZZZZZZZZZZZZZZZZZZ"

        with pytest.raises(NotFoundException):
            service.create_booking(student, data)

    @pytest.mark.parametrize(
        "state",
        [VerificationState.INCOMPLETE, VerificationState.PENDING, VerificationState.REJECTED],
    )
    def test_unverified_tutor_not_eligible(self, service, make_tutor, student, monday, utc_at, state):
        tutor = make_tutor(state=state)

        with pytest.raises(TutorNotEligibleException) as exc_info:
            service.create_booking(student, _request(tutor, utc_at(monday, 10)))

        assert exc_info.value.code == "TUTOR_NOT_ELIGIBLE"
        assert exc_info.value.details["verification_state"] == state.value

    def test_subject_not_taught(self, service, tutor, student, monday, utc_at):
        with pytest.raises(InvalidSubjectException) as exc_info:
            service.create_booking(student, _request(tutor, utc_at(monday, 10), subject="Physics"))

        assert exc_info.value.details["offered_subjects"] == ["Mathematics"]

    def test_duration_outside_allowed_set(self, service, tutor, student, monday, utc_at):
        with pytest.raises(ValidationException) as exc_info:
            service.create_booking(student, _request(tutor, utc_at(monday, 10), minutes=45))

        assert exc_info.value.details["allowed"] == [30, 60, 90, 120]

    def test_start_must_be_in_the_future(self, service, tutor, student):
        start = (utc_now() - timedelta(days=1)).replace(minute=0, second=0, microsecond=0)

        with pytest.raises(ValidationException, match="future"):
            service.create_booking(student, _request(tutor, start))

    def test_outside_declared_window(self, service, make_tutor, student, monday, utc_at):
        tutor = make_tutor(availability={"Monday": [(time(9, 0), time(12, 0))]})

        with pytest.raises(OutsideAvailabilityException) as exc_info:
            service.create_booking(student, _request(tutor, utc_at(monday, 13)))

        assert exc_info.value.code == "OUTSIDE_AVAILABILITY"
        assert exc_info.value.details == {"day": "Monday", "requested": "13:00-14:00"}

    def test_interval_spilling_past_window_end(self, service, make_tutor, student, monday, utc_at):
        tutor = make_tutor(availability={"Monday": [(time(9, 0), time(12, 0))]})

        with pytest.raises(OutsideAvailabilityException):
            service.create_booking(student, _request(tutor, utc_at(monday, 11, 30), minutes=60))

    def test_window_on_other_day_does_not_count(self, service, make_tutor, student, next_weekday, utc_at):
        tutor = make_tutor(availability={"Tuesday": [(time(9, 0), time(17, 0))]})
        monday = next_weekday(DayOfWeek.MONDAY)

        with pytest.raises(OutsideAvailabilityException):
            service.create_booking(student, _request(tutor, utc_at(monday, 10)))

    def test_overlap_with_scheduled_booking(
        self, service, tutor, student, make_user, make_booking, monday, utc_at
    ):
        existing = make_booking(tutor, make_user(RoleName.STUDENT), utc_at(monday, 10), minutes=60)

        with pytest.raises(SlotConflictException) as exc_info:
            service.create_booking(student, _request(tutor, utc_at(monday, 10, 30)))

        assert exc_info.value.code == "SLOT_CONFLICT"
        assert exc_info.value.details["conflicting_booking_ids"] == [existing.id]

    def test_touching_intervals_do_not_conflict(
        self, service, tutor, student, make_user, make_booking, monday, utc_at
    ):
        make_booking(tutor, make_user(RoleName.STUDENT), utc_at(monday, 10), minutes=60)

        booking = service.create_booking(student, _request(tutor, utc_at(monday, 11)))

        assert booking.start_time == utc_at(monday, 11)

    @pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
    def test_non_scheduled_bookings_do_not_block(
        self, service, tutor, student, make_user, make_booking, monday, utc_at, status
    ):
        make_booking(tutor, make_user(RoleName.STUDENT), utc_at(monday, 10), status=status)

        booking = service.create_booking(student, _request(tutor, utc_at(monday, 10)))

        assert booking.is_scheduled

    def test_only_students_can_book(self, service, tutor, make_user, monday, utc_at):
        other_tutor = make_user(RoleName.TUTOR)

        with pytest.raises(ForbiddenException):
            service.create_booking(other_tutor, _request(tutor, utc_at(monday, 10)))

    def test_idempotency_key_returns_original_booking(
        self, service, db, tutor, student, monday, utc_at
    ):
        data = _request(tutor, utc_at(monday, 10))

        first = service.create_booking(student, data, idempotency_key="retry-1")
        second = service.create_booking(student, data, idempotency_key="retry-1")

        assert first.id == second.id
        assert db.query(Booking).count() == 1


class TestValidationOrder:
    def test_eligibility_before_subject(self, service, make_tutor, student, monday, utc_at):
        tutor = make_tutor(state=VerificationState.PENDING)

        with pytest.raises(TutorNotEligibleException):
            service.create_booking(student, _request(tutor, utc_at(monday, 10), subject="Physics"))

    def test_subject_before_duration(self, service, tutor, student, monday, utc_at):
        with pytest.raises(InvalidSubjectException):
            service.create_booking(
                student, _request(tutor, utc_at(monday, 10), minutes=45, subject="Physics")
            )

    def test_duration_before_availability(self, service, make_tutor, student, monday, utc_at):
        tutor = make_tutor(availability={"Monday": [(time(9, 0), time(12, 0))]})

        with pytest.raises(ValidationException):
            service.create_booking(student, _request(tutor, utc_at(monday, 13), minutes=45))

    def test_availability_before_overlap(
        self, service, make_tutor, student, make_user, make_booking, monday, utc_at
    ):
        tutor = make_tutor(availability={"Monday": [(time(9, 0), time(12, 0))]})
        make_booking(tutor, make_user(RoleName.STUDENT), utc_at(monday, 13))

        with pytest.raises(OutsideAvailabilityException):
            service.create_booking(student, _request(tutor, utc_at(monday, 13)))


class TestCancelBooking:
    def test_student_cancels_and_slot_is_bookable_again(
        self, service, tutor, student, make_user, monday, utc_at
    ):
        booking = service.create_booking(student, _request(tutor, utc_at(monday, 10)))

        cancelled = service.cancel_booking(booking.id, student)

        assert cancelled.status == BookingStatus.CANCELLED.value
        assert cancelled.cancelled_at is not None
        assert cancelled.cancelled_by_id == student.id

        rebooked = service.create_booking(
            make_user(RoleName.STUDENT), _request(tutor, utc_at(monday, 10))
        )
        assert rebooked.is_scheduled

    def test_missing_booking(self, service, student):
        with pytest.raises(NotFoundException):
            service.cancel_booking("01HZZZZZZZZZZZZZZZZZZZZZZZ", student)

    def test_started_booking_is_already_past_for_any_requester(
        self, service, tutor, student, make_user, make_booking
    ):
        start = (utc_now() - timedelta(hours=2)).replace(microsecond=0)
        booking = make_booking(tutor, student, start)

        with pytest.raises(AlreadyPastException):
            service.cancel_booking(booking.id, student)
        with pytest.raises(AlreadyPastException):
            service.cancel_booking(booking.id, make_user(RoleName.STUDENT))

    def test_only_the_booking_student_may_cancel(
        self, service, tutor, student, admin, make_user, make_booking, monday, utc_at
    ):
        booking = make_booking(tutor, student, utc_at(monday, 10))

        for requester in (make_user(RoleName.STUDENT), tutor.user, admin):
            with pytest.raises(ForbiddenException):
                service.cancel_booking(booking.id, requester)
        assert booking.status == BookingStatus.SCHEDULED.value

    def test_cancelling_twice_is_invalid_transition(
        self, service, tutor, student, make_booking, monday, utc_at
    ):
        booking = make_booking(tutor, student, utc_at(monday, 10), status=BookingStatus.CANCELLED)

        with pytest.raises(InvalidStateTransitionException) as exc_info:
            service.cancel_booking(booking.id, student)

        assert exc_info.value.details["current_state"] == "cancelled"


class TestDashboards:
    def test_student_sessions_split_by_start_time(
        self, service, tutor, student, make_booking, monday, utc_at
    ):
        past = make_booking(
            tutor, student, (utc_now() - timedelta(days=3)).replace(microsecond=0),
            status=BookingStatus.COMPLETED,
        )
        upcoming = make_booking(tutor, student, utc_at(monday, 10))

        upcoming_list, past_list = service.get_student_sessions(student)

        assert [b.id for b in upcoming_list] == [upcoming.id]
        assert [b.id for b in past_list] == [past.id]

    def test_student_stats(self, service, tutor, student, make_booking, monday, utc_at):
        now = utc_now().replace(microsecond=0)
        make_booking(tutor, student, now - timedelta(days=7), minutes=90, status=BookingStatus.COMPLETED)
        make_booking(tutor, student, now - timedelta(days=2), minutes=60, subject="Physics")
        make_booking(tutor, student, utc_at(monday, 10), minutes=60)
        make_booking(
            tutor, student, now - timedelta(days=1), minutes=120, status=BookingStatus.CANCELLED
        )

        stats = service.get_student_stats(student)

        assert stats["total_sessions"] == 3
        assert stats["hours_learned"] == 2.5
        assert stats["favorite_subject"] == "Mathematics"

    def test_tutor_sessions_visible_to_owner_and_admin_only(
        self, service, tutor, student, admin, make_booking, make_user, monday, utc_at
    ):
        make_booking(tutor, student, utc_at(monday, 10))

        assert len(service.get_tutor_sessions(tutor.id, tutor.user)) == 1
        assert len(service.get_tutor_sessions(tutor.id, admin)) == 1
        with pytest.raises(ForbiddenException):
            service.get_tutor_sessions(tutor.id, student)
        with pytest.raises(ForbiddenException):
            service.get_tutor_sessions(tutor.id, make_user(RoleName.TUTOR))

    def test_tutor_stats_use_snapshot_prices(
        self, db, service, tutor, student, make_booking, monday, utc_at
    ):
        now = utc_now().replace(microsecond=0)
        make_booking(
            tutor, student, now - timedelta(days=5), status=BookingStatus.COMPLETED, price="40.00"
        )
        make_booking(tutor, student, now - timedelta(days=2), minutes=90, price="60.50")
        make_booking(tutor, student, now - timedelta(minutes=30), minutes=60, price="40.00")
        make_booking(
            tutor, student, now - timedelta(days=1), status=BookingStatus.CANCELLED, price="99.00"
        )
        make_booking(tutor, student, utc_at(monday, 10), price="40.00")
        tutor.hourly_rate = Decimal("200.00")
        db.commit()

        stats = service.get_tutor_stats(tutor.user)

        assert stats["completed_sessions"] == 2
        assert stats["upcoming_sessions"] == 1
        assert stats["earnings"] == Decimal("100.50")

    def test_tutor_stats_empty(self, service, tutor):
        stats = service.get_tutor_stats(tutor.user)

        assert stats["completed_sessions"] == 0
        assert stats["earnings"] == Decimal("0.00")
        assert stats["rating"] is None

    def test_tutor_stats_require_tutor(self, service, student):
        with pytest.raises(ForbiddenException):
            service.get_tutor_stats(student)
