# init_db.py
"""Create the states table if it is missing and list the tables present."""
from sqlalchemy import inspect

from config import Settings
from database import Base, make_engine
import models  # noqa: F401  registers State on Base.metadata


def main():
    settings = Settings.from_env()
    engine = make_engine(settings)
    try:
        with engine.begin() as conn:
            Base.metadata.create_all(conn)
            print("✅ Connected successfully!")
            tables = inspect(conn).get_table_names()

        if tables:
            print(f"📦 Tables in {engine.url.database}:")
            for t in tables:
                print(f" - {t}")
        else:
            print(f"⚠️ No tables found in {engine.url.database}.")
    except Exception as e:
        print("❌ Connection failed:", e)
        raise SystemExit(1)
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
