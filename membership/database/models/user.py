from sqlalchemy import Column, Integer, String
from membership import config
from ..database import Base

class User(Base):
    """
    외부 신원 시스템이 소유하는 사용자를 나타냅니다.
    이 패키지는 사용자의 주 그룹(primary group) 참조만 관리합니다.
    primary_group_id는 소유 관계가 아닌 약한 참조이며, 그룹이 삭제되어도 정리되지 않습니다.
    """
    __tablename__ = config.USERS_TABLE
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    primary_group_id = Column(Integer, nullable=True) # 외래 키 제약 없음
