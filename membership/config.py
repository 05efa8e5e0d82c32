# membership/config.py
import os
from dotenv import load_dotenv

from membership.utils.handle_generator import validate_separator

# .env 파일이 있으면 환경 변수로 불러옵니다.
load_dotenv()

# 데이터베이스 연결 문자열 (기본값은 SQLite)
DATABASE_URL: str = os.environ.get("DATABASE_URL", "sqlite:///membership.db")

LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

# --- Users ---
USERS_AVATAR_DEFAULT: str = os.environ.get("USERS_AVATAR_DEFAULT", "assets/img/misc/noavatar.png")
USERS_AVATAR_PATH: str = os.environ.get("USERS_AVATAR_PATH", "uploads/images/avatars")
USERS_PER_PAGE: int = int(os.environ.get("USERS_PER_PAGE", "10"))
USERS_TABLE: str = os.environ.get("USERS_TABLE", "users")

# --- Groups ---
DEFAULT_GROUP_ID: int = int(os.environ.get("DEFAULT_GROUP_ID", "1"))
GROUPS_HANDLE_SEPARATOR: str = validate_separator(os.environ.get("GROUPS_HANDLE_SEPARATOR", "-"))
GROUPS_PER_PAGE: int = int(os.environ.get("GROUPS_PER_PAGE", "10"))

# --- Permission Sets ---
# 권한 묶음(set) 기능은 이 패키지에 없습니다. 설정 표면을 유지하기 위해 읽고 검증만 하며 사용하는 곳은 없습니다.
SETS_HANDLE_SEPARATOR: str = validate_separator(os.environ.get("SETS_HANDLE_SEPARATOR", "."))
SETS_PER_PAGE: int = int(os.environ.get("SETS_PER_PAGE", "10"))

# --- Permissions ---
PERMISSIONS_HANDLE_SEPARATOR: str = validate_separator(os.environ.get("PERMISSIONS_HANDLE_SEPARATOR", "."))
PERMISSIONS_PER_PAGE: int = int(os.environ.get("PERMISSIONS_PER_PAGE", "10"))
