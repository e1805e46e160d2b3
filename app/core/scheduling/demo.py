"""Demo doctors used to seed development environments."""

from datetime import time

from app.core.scheduling.types import Doctor, WeeklyAvailabilityWindow

MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY = 1, 2, 3, 4, 5


def _windows(weekdays: tuple[int, ...], *ranges: tuple[time, time]) -> list[WeeklyAvailabilityWindow]:
    return [
        WeeklyAvailabilityWindow(weekday=day, start=start, end=end)
        for day in weekdays
        for start, end in ranges
    ]


def demo_doctors() -> list[Doctor]:
    """Fresh list of demo doctors with their weekly schedules."""
    return [
        Doctor(
            id=1,
            name="Dra. Ana Souza",
            crm="CRM/SP 123456",
            specialty="Cardiologia",
            city="São Paulo",
            hours=_windows(
                (MONDAY, WEDNESDAY, FRIDAY),
                (time(9, 0), time(11, 30)),
                (time(14, 0), time(15, 30)),
            ),
        ),
        Doctor(
            id=2,
            name="Dr. Bruno Lima",
            crm="CRM/RJ 654321",
            specialty="Dermatologia",
            city="Rio de Janeiro",
            hours=_windows(
                (TUESDAY, THURSDAY),
                (time(10, 0), time(11, 30)),
                (time(14, 0), time(15, 30)),
            ),
        ),
        Doctor(
            id=3,
            name="Dr. Pedro Costa",
            crm="CRM/SP 246810",
            specialty="Dermatologia",
            city="São Paulo",
            hours=_windows(
                (MONDAY, THURSDAY),
                (time(8, 0), time(12, 0)),
            ),
        ),
    ]
