#!/usr/bin/env python3
"""Emit deterministic DDL for the jobly companies/jobs tables."""

from __future__ import annotations

import argparse

JOB_COLUMNS = ("title", "salary", "equity", "company_handle")
DEFAULT_UNIQUE_COLUMNS = JOB_COLUMNS


def parse_unique_columns(raw: str) -> tuple[str, ...]:
    columns = tuple(chunk.strip() for chunk in raw.split(",") if chunk.strip())
    if not columns:
        raise argparse.ArgumentTypeError("at least one column is required")
    unknown = [column for column in columns if column not in JOB_COLUMNS]
    if unknown:
        raise argparse.ArgumentTypeError(f"unknown job columns: {', '.join(unknown)}")
    if len(set(columns)) != len(columns):
        raise argparse.ArgumentTypeError("columns must not repeat")
    return columns


def render_sql(*, unique_columns: tuple[str, ...] = DEFAULT_UNIQUE_COLUMNS, drop_existing: bool = False) -> str:
    drop_sql = ""
    if drop_existing:
        drop_sql = "drop table if exists jobs;\ndrop table if exists companies;\n\n"

    if unique_columns:
        unique_sql = f",\n  constraint jobs_unique_key unique nulls not distinct ({', '.join(unique_columns)})"
    else:
        unique_sql = ""

    return f"""-- jobly schema
-- Apply with psql (or any privileged Postgres session) before starting the API.

{drop_sql}create table if not exists companies (
  handle varchar(25) primary key check (handle = lower(handle)),
  name text unique not null,
  num_employees integer check (num_employees >= 0),
  description text,
  logo_url text
);

create table if not exists jobs (
  id serial primary key,
  title text not null check (title <> ''),
  salary integer check (salary >= 0),
  equity numeric check (equity <= 1.0 and equity >= 0),
  company_handle varchar(25) not null references companies on delete cascade{unique_sql}
);
"""


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit DDL for the jobly companies and jobs tables.")
    parser.add_argument(
        "--unique-columns",
        type=parse_unique_columns,
        default=DEFAULT_UNIQUE_COLUMNS,
        help="Comma-separated job columns forming the duplicate-job key",
    )
    parser.add_argument(
        "--no-unique",
        action="store_true",
        help="Do not constrain duplicate jobs",
    )
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop the tables before recreating them",
    )
    args = parser.parse_args()

    print(
        render_sql(
            unique_columns=() if args.no_unique else args.unique_columns,
            drop_existing=args.drop_existing,
        )
    )


if __name__ == "__main__":
    main()
