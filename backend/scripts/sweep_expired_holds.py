from app.db.session import SessionLocal
from app.scheduling.holds import sweep_expired_holds


def main() -> None:
    session = SessionLocal()
    try:
        removed = sweep_expired_holds(session)
        print(f"Removed {removed} expired holds")
    finally:
        session.close()


if __name__ == "__main__":
    main()
