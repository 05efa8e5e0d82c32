from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from membership.database import models
from membership.repositories.interfaces import IGroupRepository

class SqlalchemyGroupRepository(IGroupRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def _commit(self):
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback() # 고유 인덱스 위반 시 세션을 다시 사용할 수 있도록 되돌림
            raise

    def create(self, group_model: models.Group) -> models.Group:
        self.db.add(group_model)
        self._commit()
        self.db.refresh(group_model)
        return group_model

    def find_by_id(self, group_id: int) -> Optional[models.Group]:
        return self.db.query(models.Group).filter(models.Group.id == group_id).first()

    def find_by_handle(self, handle: str) -> Optional[models.Group]:
        return self.db.query(models.Group).filter(models.Group.handle == handle).first()

    def list_page(self, offset: int, limit: int, public_only: bool = False) -> List[models.Group]:
        query = self.db.query(models.Group)
        if public_only:
            query = query.filter(models.Group.public.is_(True))
        return query.order_by(models.Group.name.asc(), models.Group.id.asc()).offset(offset).limit(limit).all()

    def update(self, group: models.Group) -> models.Group:
        self._commit()
        self.db.refresh(group)
        return group

    def delete(self, group: models.Group) -> bool:
        if group:
            self.db.delete(group)
            self.db.commit()
            return True
        return False
