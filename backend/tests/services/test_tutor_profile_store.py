"""Tutor Profile Store: submission, search and the public view."""

from datetime import time
from decimal import Decimal

import pytest

from tutorconnect.core.enums import RoleName, TeachingMethodFilter, VerificationState
from tutorconnect.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from tutorconnect.repositories.tutor_repository import TutorSearchFilters
from tutorconnect.schemas.tutor import TutorProfileSubmit
from tutorconnect.services.tutor_profile_service import TutorProfileService


@pytest.fixture
def service(db):
    return TutorProfileService(db)


def _complete_submission(**overrides):
    payload = {
        "subjects": [{"name": "Physics", "level": "advanced"}],
        "education": [{"degree": "MSc", "institution": "Tech Institute", "yearCompleted": 2018}],
        "experience": {"years": 4, "description": "High school teaching"},
        "bio": "Physics made simple",
        "hourlyRate": "55.00",
        "availability": [
            {"day": "Tuesday", "slots": [{"startTime": "09:00", "endTime": "12:00"}]}
        ],
        "teachingMethods": {"online": True, "inPerson": False},
        "location": {"city": "Lisbon", "country": "Portugal"},
        "timezone": "Europe/Lisbon",
    }
    payload.update(overrides)
    return TutorProfileSubmit.model_validate(payload)


class TestSubmitProfile:
    def test_incomplete_profile_moves_to_pending(self, service, make_tutor):
        profile = make_tutor(state=VerificationState.INCOMPLETE, subjects=())

        updated = service.submit_profile(profile.id, _complete_submission(), profile.user)

        assert updated.verification_state == VerificationState.PENDING.value
        assert updated.profile_completed is True
        assert [s.name for s in updated.subjects] == ["Physics"]
        assert updated.hourly_rate == Decimal("55.00")
        assert updated.timezone == "Europe/Lisbon"
        assert [(w.day_of_week, f"{w.start_time:%H:%M}") for w in updated.availability] == [
            ("Tuesday", "09:00")
        ]

    def test_rejected_profile_returns_to_pending(self, service, make_tutor):
        profile = make_tutor(state=VerificationState.REJECTED)

        updated = service.submit_profile(profile.id, _complete_submission(), profile.user)

        assert updated.verification_state == VerificationState.PENDING.value

    def test_verified_profile_stays_verified(self, service, make_tutor):
        profile = make_tutor(state=VerificationState.VERIFIED)

        updated = service.submit_profile(
            profile.id, _complete_submission(hourlyRate="70.00"), profile.user
        )

        assert updated.verification_state == VerificationState.VERIFIED.value
        assert updated.hourly_rate == Decimal("70.00")

    def test_pending_profile_is_revalidated_and_stays_pending(self, service, make_tutor):
        profile = make_tutor(state=VerificationState.PENDING)

        updated = service.submit_profile(
            profile.id, _complete_submission(bio="Updated bio"), profile.user
        )

        assert updated.verification_state == VerificationState.PENDING.value
        assert updated.bio == "Updated bio"

        with pytest.raises(ValidationException):
            service.submit_profile(profile.id, _complete_submission(subjects=[]), profile.user)
        assert profile.verification_state == VerificationState.PENDING.value

    def test_resubmitting_same_subject_name(self, service, make_tutor):
        profile = make_tutor(state=VerificationState.PENDING, subjects=("Physics",))

        updated = service.submit_profile(profile.id, _complete_submission(), profile.user)

        assert [s.level for s in updated.subjects] == ["advanced"]

    def test_all_missing_fields_reported_together(self, service, make_tutor):
        profile = make_tutor(state=VerificationState.INCOMPLETE)
        data = _complete_submission(
            subjects=[],
            education=[],
            hourlyRate=None,
            teachingMethods={"online": False, "inPerson": False},
        )

        with pytest.raises(ValidationException) as exc_info:
            service.submit_profile(profile.id, data, profile.user)

        assert exc_info.value.details["missing_fields"] == [
            "subjects",
            "education",
            "hourlyRate",
            "teachingMethods",
        ]

    def test_rate_below_minimum_is_missing(self, service, make_tutor):
        profile = make_tutor(state=VerificationState.INCOMPLETE)

        with pytest.raises(ValidationException) as exc_info:
            service.submit_profile(
                profile.id, _complete_submission(hourlyRate="5.00"), profile.user
            )

        assert exc_info.value.details["missing_fields"] == ["hourlyRate"]

    def test_other_tutor_cannot_edit(self, service, make_tutor):
        profile = make_tutor()
        intruder = make_tutor()

        with pytest.raises(ForbiddenException):
            service.submit_profile(profile.id, _complete_submission(), intruder.user)

    def test_overlapping_windows_rejected_by_schema(self):
        with pytest.raises(ValueError):
            _complete_submission(
                availability=[
                    {
                        "day": "Monday",
                        "slots": [
                            {"startTime": "09:00", "endTime": "11:00"},
                            {"startTime": "10:30", "endTime": "12:00"},
                        ],
                    }
                ]
            )


class TestSearch:
    def test_only_verified_completed_profiles(self, service, make_tutor):
        visible = make_tutor()
        make_tutor(state=VerificationState.PENDING)
        make_tutor(state=VerificationState.REJECTED)

        results = service.search_tutors(TutorSearchFilters())

        assert [p.id for p in results] == [visible.id]

    def test_subject_is_case_insensitive_substring(self, service, make_tutor):
        maths = make_tutor(subjects=("Mathematics",))
        make_tutor(subjects=("Chemistry",))

        results = service.search_tutors(TutorSearchFilters(subject="MATH"))

        assert [p.id for p in results] == [maths.id]

    @pytest.mark.parametrize("needle", ["%", "_", "M%s", "Math_matics"])
    def test_like_wildcards_match_literally(self, service, make_tutor, needle):
        make_tutor(subjects=("Mathematics",))

        assert service.search_tutors(TutorSearchFilters(subject=needle)) == []

    def test_literal_percent_in_subject_name(self, service, make_tutor):
        odd = make_tutor(subjects=("100% Maths",))
        make_tutor(subjects=("Mathematics",))

        results = service.search_tutors(TutorSearchFilters(subject="0%"))

        assert [p.id for p in results] == [odd.id]

    def test_rate_bounds_are_inclusive(self, service, make_tutor):
        cheap = make_tutor(hourly_rate="20.00")
        mid = make_tutor(hourly_rate="40.00")
        make_tutor(hourly_rate="80.00")

        results = service.search_tutors(
            TutorSearchFilters(min_rate=Decimal("20.00"), max_rate=Decimal("40.00"))
        )

        assert {p.id for p in results} == {cheap.id, mid.id}

    def test_min_above_max_rejected(self, service):
        with pytest.raises(ValidationException):
            service.search_tutors(
                TutorSearchFilters(min_rate=Decimal("50"), max_rate=Decimal("10"))
            )

    def test_teaching_method_filter(self, service, make_tutor):
        online = make_tutor(teaches_online=True, teaches_in_person=False)
        both = make_tutor(teaches_online=True, teaches_in_person=True)

        in_person = service.search_tutors(
            TutorSearchFilters(teaching_method=TeachingMethodFilter.IN_PERSON)
        )
        any_method = service.search_tutors(TutorSearchFilters())

        assert [p.id for p in in_person] == [both.id]
        assert {p.id for p in any_method} == {online.id, both.id}

    def test_availability_days_filter(self, service, make_tutor):
        weekend = make_tutor(availability={"Saturday": [(time(10, 0), time(14, 0))]})
        make_tutor(availability={"Monday": [(time(10, 0), time(14, 0))]})

        results = service.search_tutors(TutorSearchFilters(days=["Saturday", "Sunday"]))

        assert [p.id for p in results] == [weekend.id]


class TestPublicProfile:
    def test_verified_profile_visible(self, service, tutor):
        assert service.get_public_tutor(tutor.id).id == tutor.id

    def test_pending_profile_hidden(self, service, make_tutor):
        hidden = make_tutor(state=VerificationState.PENDING)

        with pytest.raises(NotFoundException):
            service.get_public_tutor(hidden.id)

    def test_own_profile_requires_tutor_role(self, service, student, tutor):
        assert service.get_profile_for_user(tutor.user).id == tutor.id
        with pytest.raises(ForbiddenException):
            service.get_profile_for_user(student)

    def test_student_role_has_no_profile(self, make_user):
        assert make_user(RoleName.STUDENT).tutor_profile is None
