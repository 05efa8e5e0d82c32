from sqlalchemy import Column, Integer, String, Boolean
from ..database import Base

class Group(Base):
    """
    사용자들이 소속되는 그룹을 나타냅니다. (예: 'Administrators', 'VIP')
    그룹에 부여된 권한은 그룹의 모든 멤버가 갖게 됩니다.
    limit이 0이면 인원 제한이 없습니다.
    """
    __tablename__ = "groups"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    handle = Column(String, unique=True, nullable=False, index=True)
    open_tag = Column(String, nullable=False, default='')
    close_tag = Column(String, nullable=False, default='')
    limit = Column(Integer, nullable=False, default=0)
    public = Column(Boolean, nullable=False, default=False)

    @property
    def formatted_name(self) -> str:
        """태그로 감싼 표시용 이름 (예: '[VIP]')"""
        return f"{self.open_tag or ''}{self.name}{self.close_tag or ''}"
