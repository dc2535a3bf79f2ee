"""Fake contact data for newly generated persons."""

from __future__ import annotations

from typing import Optional

from faker import Faker

from services.person_store import Person

_faker = Faker()


def generate_person(person_id: int, faker: Optional[Faker] = None) -> Person:
    fake = faker or _faker
    return Person(
        id=person_id,
        name=fake.name(),
        phone=fake.phone_number(),
        company=fake.company(),
    )
