#!/usr/bin/env python3
"""Maintenance CLI for the person directory database."""

from __future__ import annotations

import argparse
import sys

from config import Config
from services.fake_people import generate_person
from services.person_store import PersonStore, StartupError


def open_store(dsn: str) -> PersonStore:
    return PersonStore.open(
        dsn,
        attach_path=Config.SQLITE_ATTACH_PATH,
        attach_alias=Config.SQLITE_ATTACH_ALIAS,
    )


def migrate(store: PersonStore):
    print(f"persons={store.count()}")


def generate(store: PersonStore, count: int):
    for _ in range(count):
        person = generate_person(store.next_id())
        store.insert(person)
        print(f"inserted id={person.id}")


def list_recent(store: PersonStore, limit: int):
    for person in store.recent(limit):
        print(f"- {person.name} @ {person.company} ({person.phone})")


def main(argv=None):
    parser = argparse.ArgumentParser(description='LiteFS person directory admin utility')
    parser.add_argument('--dsn', default=Config.DATABASE_DSN)
    sub = parser.add_subparsers(dest='cmd', required=True)

    sub.add_parser('migrate')

    p1 = sub.add_parser('generate')
    p1.add_argument('--count', type=int, default=1)

    p2 = sub.add_parser('list')
    p2.add_argument('--limit', type=int, default=Config.RECENT_PERSONS_LIMIT)

    args = parser.parse_args(argv)

    try:
        store = open_store(args.dsn)
    except StartupError as exc:
        print(exc, file=sys.stderr)
        raise SystemExit(1)

    try:
        if args.cmd == 'migrate':
            migrate(store)
        elif args.cmd == 'generate':
            generate(store, args.count)
        elif args.cmd == 'list':
            list_recent(store, args.limit)
    finally:
        store.close()


if __name__ == '__main__':
    main()
