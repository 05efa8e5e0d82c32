import logging
from .database import engine, SessionLocal, Base
from .models import Group, Permission, GroupPermission

logger = logging.getLogger(__name__)

# 초기 설치 시 생성되는 권한 (name, handle, type)
DEFAULT_PERMISSIONS = [
    ('Manage Groups', 'groups.manage', 'groups'),
    ('Manage Permissions', 'permissions.manage', 'permissions'),
    ('Manage Users', 'users.manage', 'users'),
]

def initialize_db(bind=None):
    """
    DB와 테이블을 생성하고, 기본 데이터를 삽입합니다.
    기본 그룹(ID 1)은 새 사용자가 배정되는 'Members' 그룹입니다.
    """
    bind = bind or engine
    logger.info("Initializing membership database...")

    # 모든 테이블을 생성합니다. (이미 존재하면 생성하지 않음)
    Base.metadata.create_all(bind=bind)

    db = SessionLocal(bind=bind)
    try:
        # 기본 데이터가 이미 있는지 확인
        if db.query(Group).first():
            logger.info("Default data already exists; skipping seed.")
            return

        members = Group(name='Members', handle='members', open_tag='', close_tag='', limit=0, public=True)
        admins = Group(name='Administrators', handle='administrators',
                       open_tag='<strong>', close_tag='</strong>', limit=0, public=False)
        db.add(members)
        db.add(admins)

        permissions = [Permission(name=name, handle=handle, type=type_) for name, handle, type_ in DEFAULT_PERMISSIONS]
        db.add_all(permissions)

        # 변경사항을 커밋하여 각 객체의 id를 할당받습니다.
        db.commit()

        for permission in permissions:
            db.add(GroupPermission(group_id=admins.id, permission_id=permission.id))
        db.commit()
        logger.info("Database initialized with default groups and permissions.")

    except Exception:
        logger.exception("Failed to initialize the database.")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    initialize_db()
