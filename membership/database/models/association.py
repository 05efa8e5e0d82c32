from sqlalchemy import Column, Integer, ForeignKey
from membership import config
from ..database import Base

# 아래 연관 테이블들은 (id, id) 쌍만 저장하는 순수 조인 테이블입니다.
# 그룹/권한/사용자 삭제 시 연쇄 삭제(cascade)를 정의하지 않습니다.
# group_id는 식별자만 보관하는 약한 참조이므로 외래 키 제약을 두지 않습니다.

class UserGroup(Base):
    """사용자(User)와 그룹(Group) 사이의 멤버십 레코드입니다."""
    __tablename__ = 'user_groups'
    user_id = Column(Integer, ForeignKey(f'{config.USERS_TABLE}.id'), primary_key=True)
    group_id = Column(Integer, primary_key=True)

class GroupLeader(Base):
    """
    그룹의 리더 레코드입니다. 멤버십과는 독립적으로 관리되며,
    리더는 그룹 인원 제한에 포함되지 않습니다.
    """
    __tablename__ = 'group_leaders'
    user_id = Column(Integer, ForeignKey(f'{config.USERS_TABLE}.id'), primary_key=True)
    group_id = Column(Integer, primary_key=True)

class GroupPermission(Base):
    """그룹 전체에 부여된 권한 레코드입니다."""
    __tablename__ = 'group_permissions'
    group_id = Column(Integer, primary_key=True)
    permission_id = Column(Integer, ForeignKey('permissions.id'), primary_key=True)

class UserPermission(Base):
    """사용자 한 명에게 직접 부여된 권한 레코드입니다."""
    __tablename__ = 'user_permissions'
    user_id = Column(Integer, ForeignKey(f'{config.USERS_TABLE}.id'), primary_key=True)
    permission_id = Column(Integer, ForeignKey('permissions.id'), primary_key=True)
