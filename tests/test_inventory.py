from datetime import date

from anantam_api.domain.workshops.inventory import has_available_spots, increase_spots, reduce_spots
from anantam_api.models import Workshop, WorkshopSession

MAY_1 = date(2026, 5, 1)
MAY_2 = date(2026, 5, 2)


def build_workshop(spots=2, allocated=2):
    workshop = Workshop(id=1, title="Drone Basics")
    workshop.sessions = [
        WorkshopSession(session_date=MAY_1, spots=spots, allocated_spots=allocated),
    ]
    return workshop


def test_available_only_on_exact_session_date():
    workshop = build_workshop()
    assert has_available_spots(workshop, MAY_1) is True
    assert has_available_spots(workshop, MAY_2) is False


def test_no_availability_when_sold_out():
    workshop = build_workshop(spots=0)
    assert has_available_spots(workshop, MAY_1) is False


def test_reduce_takes_seats():
    workshop = build_workshop(spots=2)
    assert reduce_spots(workshop, MAY_1) is True
    assert workshop.sessions[0].spots == 1


def test_reduce_is_all_or_nothing():
    workshop = build_workshop(spots=1)
    assert reduce_spots(workshop, MAY_1, count=2) is False
    assert workshop.sessions[0].spots == 1


def test_reduce_unknown_date_fails():
    workshop = build_workshop()
    assert reduce_spots(workshop, MAY_2) is False


def test_reduce_never_goes_negative():
    workshop = build_workshop(spots=0)
    assert reduce_spots(workshop, MAY_1) is False
    assert workshop.sessions[0].spots == 0


def test_increase_gives_seat_back():
    workshop = build_workshop(spots=0, allocated=2)
    assert increase_spots(workshop, MAY_1) is True
    assert workshop.sessions[0].spots == 1


def test_increase_is_capped_at_allocation():
    workshop = build_workshop(spots=2, allocated=2)
    assert increase_spots(workshop, MAY_1, count=3) is True
    assert workshop.sessions[0].spots == 2


def test_increase_unknown_date_fails():
    workshop = build_workshop()
    assert increase_spots(workshop, MAY_2) is False
