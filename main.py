import uvicorn

from fleet.backend.config import get_env, get_env_int
from fleet.backend.db.seed import seed_database
from fleet.backend.db.session import SessionLocal, init_db


def main():
    init_db()  # creates the tables on first run

    with SessionLocal() as session:
        # sample locations + machines, only into an empty database
        seed_database(session)

    uvicorn.run(
        "fleet.backend.api.main:app",
        host=get_env("HOST", "0.0.0.0"),
        port=get_env_int("PORT", 5001),
    )


if __name__ == "__main__":
    main()
