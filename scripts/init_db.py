"""Create the schema; with family ids as arguments, also provision and seed those families."""
import sys

from famledger.db.base import Base
from famledger.db.session import SessionLocal, engine
from famledger.models.family import Family
from famledger.services.family_service import seed_if_empty


def init(family_ids: list[str]) -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        for family_id in family_ids:
            if not db.get(Family, family_id):
                db.add(Family(id=family_id, name=family_id))
                db.commit()
            seeded = seed_if_empty(db, family_id=family_id)
            print(f"{family_id}: {'seeded' if seeded else 'already populated'}")


if __name__ == "__main__":
    init(sys.argv[1:])
    print("Database schema created.")
