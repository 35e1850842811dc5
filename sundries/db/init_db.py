# sundries/db/init_db.py
import argparse

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from sundries.db.base import Base
import sundries.models  # noqa: F401  (registers every table on Base.metadata)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)


def print_tables(engine: Engine) -> None:
    names = inspect(engine).get_table_names()
    print(f"Tables ({len(names)}):")
    for name in sorted(names):
        print(f"  - {name}")


def run(engine: Engine, fresh: bool = False) -> None:
    if fresh:
        print("WARNING: Dropping ALL tables (dev only) …")
        Base.metadata.drop_all(bind=engine)

    print("Creating all missing tables …")
    init_db(engine)
    print_tables(engine)


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Initialize the sundries database.")
    parser.add_argument(
        "--fresh",
        action="store_true",
        help="Drop & recreate all tables (DEV ONLY).",
    )
    args = parser.parse_args(argv)

    from sundries.db.session import engine
    run(engine, fresh=args.fresh)


if __name__ == "__main__":
    main()
