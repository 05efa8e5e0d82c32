# membership/app.py
from wsgiref.simple_server import make_server
from urllib.parse import parse_qs
import json
import logging
import re

from membership import config
from membership.database.database import SessionLocal
from membership.repositories.sqlalchemy.sqlalchemy_user_repository import SqlalchemyUserRepository
from membership.repositories.sqlalchemy.sqlalchemy_group_repository import SqlalchemyGroupRepository
from membership.repositories.sqlalchemy.sqlalchemy_permission_repository import SqlalchemyPermissionRepository
from membership.repositories.sqlalchemy.sqlalchemy_membership_repository import SqlalchemyMembershipRepository
from membership.services.group_service import GroupService
from membership.services.permission_service import PermissionService
from membership.services.membership_service import MembershipService
from membership.services.gate import Gate, PolicyRegistry
from membership.services.references import as_permission_ref
from membership.services.exceptions import *

logger = logging.getLogger(__name__)

# 프로세스 전체에서 공유하는 권한 핸들 -> 검사 함수 매핑 (bootstrap_policies에서 한 번 구성)
POLICY_REGISTRY = PolicyRegistry()

# --------------------------------------------------------------------------
## 요청 처리 유틸리티 함수
# --------------------------------------------------------------------------

def get_request_data(environ):
    try:
        content_length = int(environ.get("CONTENT_LENGTH") or 0)
        return json.loads(environ["wsgi.input"].read(content_length)) if content_length > 0 else {}
    except (ValueError, json.JSONDecodeError):
        raise ValueError("Invalid or missing JSON body.")

def get_query(environ):
    return {k: v[-1] for k, v in parse_qs(environ.get("QUERY_STRING", "")).items()}

def parse_reference(raw):
    """URL 경로의 권한 참조: 숫자면 ID, 아니면 핸들."""
    return as_permission_ref(int(raw) if raw.isdigit() else raw)

def batch_to_dict(result):
    return {"applied": result.applied, "errors": [str(e) for e in result.errors]}

def handle_exception(e):
    error_map = {
        UserNotFoundError: "404 Not Found",
        GroupNotFoundError: "404 Not Found",
        PermissionNotFoundError: "404 Not Found",
        DuplicateHandleError: "409 Conflict",
        GroupFullError: "409 Conflict",
        PermissionInUseError: "409 Conflict",
        ValueError: "400 Bad Request",
        TypeError: "400 Bad Request",
    }
    status = error_map.get(type(e), "500 Internal Server Error")
    if status.startswith("500"):
        logger.exception("Unhandled error while processing request.")
    return status, json.dumps({"error": str(e)})

def build_services(db_session):
    """요청마다 Repositories -> Services를 조립합니다."""
    user_repo = SqlalchemyUserRepository(db_session)
    group_repo = SqlalchemyGroupRepository(db_session)
    permission_repo = SqlalchemyPermissionRepository(db_session)
    membership_repo = SqlalchemyMembershipRepository(db_session)

    group_service = GroupService(group_repo, membership_repo)
    permission_service = PermissionService(permission_repo, membership_repo)
    membership_service = MembershipService(user_repo, membership_repo, group_service, permission_service)
    gate = Gate(membership_service, POLICY_REGISTRY)
    return {
        'groups': group_service,
        'permissions': permission_service,
        'membership': membership_service,
        'gate': gate,
    }

def bootstrap_policies(registry=POLICY_REGISTRY, session_factory=None):
    """
    권한 저장소의 스냅샷으로 검사 함수 매핑을 구성합니다. 프로세스 시작 시 한 번 호출합니다.
    권한 테이블이 아직 없으면 아무것도 등록하지 않습니다.
    """
    db_session = (session_factory or SessionLocal)()
    try:
        services = build_services(db_session)
        return registry.register_from(services['permissions'])
    finally:
        db_session.close()

# --------------------------------------------------------------------------
## WSGI 애플리케이션 (의존성 주입 및 라우팅)
# --------------------------------------------------------------------------

def application(environ, start_response):
    db_session = SessionLocal()
    try:
        environ['services'] = build_services(db_session)

        path = environ.get("PATH_INFO", "")
        method = environ.get("REQUEST_METHOD", "")

        handler, path_args = None, []
        for route_method, pattern, route_handler in ROUTES:
            if method == route_method and (match := re.match(pattern, path)):
                handler, path_args = route_handler, match.groups()
                break

        if handler:
            status, response_body = handler(environ, *path_args)
        else:
            status, response_body = '404 Not Found', json.dumps({'error': 'Not Found'})

    except Exception as e:
        status, response_body = handle_exception(e)
    finally:
        db_session.close()

    start_response(status, [("Content-Type", "application/json")])
    return [response_body.encode("utf-8")]

# --------------------------------------------------------------------------
## 핸들러 함수
# --------------------------------------------------------------------------

def create_group_handler(environ, *args):
    data = get_request_data(environ)
    group = environ['services']['groups'].create_group(**data)
    return '201 Created', json.dumps(group)

def list_groups_handler(environ, *args):
    query = get_query(environ)
    groups = environ['services']['groups'].list_groups(
        page=int(query.get('page', 1)), public_only=query.get('public') == '1'
    )
    return '200 OK', json.dumps({"groups": groups})

def get_group_handler(environ, group_id):
    group = environ['services']['groups'].get_group(int(group_id))
    return '200 OK', json.dumps(group)

def update_group_handler(environ, group_id):
    data = get_request_data(environ)
    group = environ['services']['groups'].update_group(int(group_id), **data)
    return '200 OK', json.dumps(group)

def delete_group_handler(environ, group_id):
    environ['services']['groups'].delete_group(int(group_id))
    return '204 No Content', ''

def group_limit_handler(environ, group_id):
    exceeded = environ['services']['groups'].limit_exceeded(int(group_id))
    return '200 OK', json.dumps({"limit_exceeded": exceeded})

def assign_user_handler(environ, group_id, user_id):
    data = get_request_data(environ)
    environ['services']['membership'].assign(int(user_id), int(group_id), make_primary=bool(data.get('primary')))
    return '204 No Content', ''

def retract_user_handler(environ, group_id, user_id):
    environ['services']['membership'].retract(int(user_id), int(group_id))
    return '204 No Content', ''

def has_member_handler(environ, group_id, user_id):
    member = environ['services']['membership'].has_member(int(group_id), int(user_id))
    return '200 OK', json.dumps({"member": member})

def add_leader_handler(environ, group_id, user_id):
    environ['services']['membership'].add_leader(int(user_id), int(group_id))
    return '204 No Content', ''

def remove_leader_handler(environ, group_id, user_id):
    environ['services']['membership'].remove_leader(int(user_id), int(group_id))
    return '204 No Content', ''

def has_leader_handler(environ, group_id, user_id):
    leader = environ['services']['membership'].has_leader(int(group_id), int(user_id))
    return '200 OK', json.dumps({"leader": leader})

def grant_group_permissions_handler(environ, group_id):
    data = get_request_data(environ)
    result = environ['services']['membership'].grant_permissions(int(group_id), data.get('permissions', []))
    return '200 OK', json.dumps(batch_to_dict(result))

def lose_group_permissions_handler(environ, group_id):
    data = get_request_data(environ)
    result = environ['services']['membership'].lose_permissions(int(group_id), data.get('permissions', []))
    return '200 OK', json.dumps(batch_to_dict(result))

def create_permission_handler(environ, *args):
    data = get_request_data(environ)
    permission = environ['services']['permissions'].create_permission(**data)
    return '201 Created', json.dumps(permission)

def list_permissions_handler(environ, *args):
    query = get_query(environ)
    permissions = environ['services']['permissions'].list_permissions(page=int(query.get('page', 1)))
    return '200 OK', json.dumps({"permissions": permissions})

def get_permission_handler(environ, permission_id):
    permission = environ['services']['permissions'].get_permission(int(permission_id))
    return '200 OK', json.dumps(permission)

def update_permission_handler(environ, permission_id):
    data = get_request_data(environ)
    permission = environ['services']['permissions'].update_permission(int(permission_id), **data)
    return '200 OK', json.dumps(permission)

def delete_permission_handler(environ, permission_id):
    environ['services']['permissions'].delete_permission(int(permission_id))
    return '204 No Content', ''

def grant_user_permission_handler(environ, user_id, reference):
    environ['services']['membership'].grant_user_permission(int(user_id), parse_reference(reference))
    return '204 No Content', ''

def revoke_user_permission_handler(environ, user_id, reference):
    environ['services']['membership'].revoke_user_permission(int(user_id), parse_reference(reference))
    return '204 No Content', ''

def user_can_handler(environ, user_id, handle):
    user = environ['services']['membership'].get_user_or_raise(int(user_id))
    allowed = environ['services']['gate'].allows(handle, user)
    return '200 OK', json.dumps({"permission": handle, "allowed": allowed})

_HANDLE = r'([A-Za-z0-9_.*-]+)'

ROUTES = [
    ('POST', r'^/v1/groups$', create_group_handler),
    ('GET', r'^/v1/groups$', list_groups_handler),
    ('GET', r'^/v1/groups/([0-9]+)$', get_group_handler),
    ('PATCH', r'^/v1/groups/([0-9]+)$', update_group_handler),
    ('DELETE', r'^/v1/groups/([0-9]+)$', delete_group_handler),
    ('GET', r'^/v1/groups/([0-9]+)/limit$', group_limit_handler),
    ('PUT', r'^/v1/groups/([0-9]+)/users/([0-9]+)$', assign_user_handler),
    ('DELETE', r'^/v1/groups/([0-9]+)/users/([0-9]+)$', retract_user_handler),
    ('GET', r'^/v1/groups/([0-9]+)/users/([0-9]+)$', has_member_handler),
    ('PUT', r'^/v1/groups/([0-9]+)/leaders/([0-9]+)$', add_leader_handler),
    ('DELETE', r'^/v1/groups/([0-9]+)/leaders/([0-9]+)$', remove_leader_handler),
    ('GET', r'^/v1/groups/([0-9]+)/leaders/([0-9]+)$', has_leader_handler),
    ('POST', r'^/v1/groups/([0-9]+)/permissions$', grant_group_permissions_handler),
    ('DELETE', r'^/v1/groups/([0-9]+)/permissions$', lose_group_permissions_handler),
    ('POST', r'^/v1/permissions$', create_permission_handler),
    ('GET', r'^/v1/permissions$', list_permissions_handler),
    ('GET', r'^/v1/permissions/([0-9]+)$', get_permission_handler),
    ('PATCH', r'^/v1/permissions/([0-9]+)$', update_permission_handler),
    ('DELETE', r'^/v1/permissions/([0-9]+)$', delete_permission_handler),
    ('PUT', r'^/v1/users/([0-9]+)/permissions/' + _HANDLE + '$', grant_user_permission_handler),
    ('DELETE', r'^/v1/users/([0-9]+)/permissions/' + _HANDLE + '$', revoke_user_permission_handler),
    ('GET', r'^/v1/users/([0-9]+)/can/' + _HANDLE + '$', user_can_handler),
]

# --------------------------------------------------------------------------
## 서버 실행
# --------------------------------------------------------------------------

if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    bootstrap_policies()
    try:
        with make_server("", 8000, application) as httpd:
            logger.info("Serving membership service on port 8000...")
            httpd.serve_forever()
    except Exception:
        logger.exception("Error starting server")
