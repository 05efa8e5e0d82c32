from typing import List
from sqlalchemy.orm import Session
from membership.database import models
from membership.repositories.interfaces import IMembershipRepository

class SqlalchemyMembershipRepository(IMembershipRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def _attach(self, record):
        self.db.merge(record) # INSERT OR IGNORE와 유사한 동작
        self.db.commit()

    def _detach(self, query):
        record = query.first()
        if record:
            self.db.delete(record)
            self.db.commit()

    # --- 멤버십 ---
    def add_member(self, group_id: int, user_id: int):
        self._attach(models.UserGroup(user_id=user_id, group_id=group_id))

    def remove_member(self, group_id: int, user_id: int):
        self._detach(self.db.query(models.UserGroup).filter(
            models.UserGroup.group_id == group_id,
            models.UserGroup.user_id == user_id
        ))

    def has_member(self, group_id: int, user_id: int) -> bool:
        return self.db.query(models.UserGroup).filter(
            models.UserGroup.group_id == group_id,
            models.UserGroup.user_id == user_id
        ).first() is not None

    def count_members(self, group_id: int) -> int:
        return self.db.query(models.UserGroup).filter(models.UserGroup.group_id == group_id).count()

    def list_group_ids_for_user(self, user_id: int) -> List[int]:
        rows = self.db.query(models.UserGroup.group_id).filter(models.UserGroup.user_id == user_id).all()
        return [row[0] for row in rows]

    # --- 리더 ---
    def add_leader(self, group_id: int, user_id: int):
        self._attach(models.GroupLeader(user_id=user_id, group_id=group_id))

    def remove_leader(self, group_id: int, user_id: int):
        self._detach(self.db.query(models.GroupLeader).filter(
            models.GroupLeader.group_id == group_id,
            models.GroupLeader.user_id == user_id
        ))

    def has_leader(self, group_id: int, user_id: int) -> bool:
        return self.db.query(models.GroupLeader).filter(
            models.GroupLeader.group_id == group_id,
            models.GroupLeader.user_id == user_id
        ).first() is not None

    # --- 권한 부여 ---
    def grant_to_group(self, group_id: int, permission_id: int):
        self._attach(models.GroupPermission(group_id=group_id, permission_id=permission_id))

    def revoke_from_group(self, group_id: int, permission_id: int):
        self._detach(self.db.query(models.GroupPermission).filter(
            models.GroupPermission.group_id == group_id,
            models.GroupPermission.permission_id == permission_id
        ))

    def grant_to_user(self, user_id: int, permission_id: int):
        self._attach(models.UserPermission(user_id=user_id, permission_id=permission_id))

    def revoke_from_user(self, user_id: int, permission_id: int):
        self._detach(self.db.query(models.UserPermission).filter(
            models.UserPermission.user_id == user_id,
            models.UserPermission.permission_id == permission_id
        ))

    def count_permission_references(self, permission_id: int) -> int:
        group_grants = self.db.query(models.GroupPermission).filter(models.GroupPermission.permission_id == permission_id).count()
        user_grants = self.db.query(models.UserPermission).filter(models.UserPermission.permission_id == permission_id).count()
        return group_grants + user_grants

    def list_user_permission_handles(self, user_id: int) -> List[str]:
        rows = self.db.query(models.Permission.handle).join(
            models.UserPermission, models.UserPermission.permission_id == models.Permission.id
        ).filter(models.UserPermission.user_id == user_id).all()
        return [row[0] for row in rows]

    def list_group_permission_handles_for_user(self, user_id: int) -> List[str]:
        rows = self.db.query(models.Permission.handle).join(
            models.GroupPermission, models.GroupPermission.permission_id == models.Permission.id
        ).join(
            models.UserGroup, models.UserGroup.group_id == models.GroupPermission.group_id
        ).filter(models.UserGroup.user_id == user_id).distinct().all()
        return [row[0] for row in rows]
