from sqlalchemy import Column, Integer, String
from ..database import Base

class Permission(Base):
    """
    점(.)으로 구분된 계층형 핸들을 갖는 권한을 나타냅니다. (예: 'posts.edit')
    권한 검사에 쓰이는 코드는 핸들 그 자체입니다.
    """
    __tablename__ = "permissions"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    handle = Column(String, unique=True, nullable=False, index=True)
    type = Column(String, nullable=False)

    @property
    def code(self) -> str:
        return self.handle
