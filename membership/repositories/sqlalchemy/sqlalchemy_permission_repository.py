from typing import List, Optional
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from membership.database import models
from membership.repositories.interfaces import IPermissionRepository

class SqlalchemyPermissionRepository(IPermissionRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def _commit(self):
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback() # 고유 인덱스 위반 시 세션을 다시 사용할 수 있도록 되돌림
            raise

    def create(self, permission_model: models.Permission) -> models.Permission:
        self.db.add(permission_model)
        self._commit()
        self.db.refresh(permission_model)
        return permission_model

    def find_by_id(self, permission_id: int) -> Optional[models.Permission]:
        return self.db.query(models.Permission).filter(models.Permission.id == permission_id).first()

    def find_by_handle(self, handle: str) -> Optional[models.Permission]:
        return self.db.query(models.Permission).filter(models.Permission.handle == handle).first()

    def find_by_name(self, name: str) -> Optional[models.Permission]:
        return self.db.query(models.Permission).filter(models.Permission.name == name).order_by(models.Permission.id.asc()).first()

    def list_page(self, offset: int, limit: int) -> List[models.Permission]:
        return self.db.query(models.Permission).order_by(models.Permission.handle.asc()).offset(offset).limit(limit).all()

    def list_all(self) -> List[models.Permission]:
        return self.db.query(models.Permission).order_by(models.Permission.handle.asc()).all()

    def update(self, permission: models.Permission) -> models.Permission:
        self._commit()
        self.db.refresh(permission)
        return permission

    def delete(self, permission: models.Permission) -> bool:
        if permission:
            self.db.delete(permission)
            self.db.commit()
            return True
        return False

    def is_provisioned(self) -> bool:
        return inspect(self.db.get_bind()).has_table(models.Permission.__tablename__)
