from typing import Optional
from sqlalchemy.orm import Session
from membership.database import models
from membership.repositories.interfaces import IUserRepository

class SqlalchemyUserRepository(IUserRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, user_model: models.User) -> models.User:
        self.db.add(user_model)
        self.db.commit()
        self.db.refresh(user_model)
        return user_model

    def find_by_id(self, user_id: int) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.id == user_id).first()

    def set_primary_group(self, user: models.User, group_id: Optional[int]) -> models.User:
        user.primary_group_id = group_id
        self.db.commit()
        self.db.refresh(user)
        return user
