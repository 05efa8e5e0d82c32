from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from membership import config

# SQLite일 때만 connect_args가 필요합니다. (thread-safe 설정)
_connect_args = {"check_same_thread": False} if config.DATABASE_URL.startswith("sqlite") else {}

# SQLAlchemy 엔진 생성
engine = create_engine(config.DATABASE_URL, connect_args=_connect_args)

# autocommit=False, autoflush=False로 설정하여, 명시적으로 commit을 호출해야 DB에 반영됩니다.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# 모든 모델 클래스가 상속받을 Base 클래스
Base = declarative_base()
