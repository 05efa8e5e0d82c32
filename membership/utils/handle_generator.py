# membership/utils/handle_generator.py
import re

from membership.services.exceptions import InvalidConfigurationError
from membership.utils.transliteration import TRANSLITERATION_TABLE

# 쉼표와 파이프는 다중 값 인코딩에 예약되어 있으므로 구분자로 사용할 수 없습니다.
RESERVED_SEPARATORS = (',', '|')

_NON_ALNUM = re.compile(r'[^a-z0-9]+')

# 한 글자 키이므로 str.translate 한 번으로 치환이 끝납니다.
_TRANSLATION = str.maketrans(TRANSLITERATION_TABLE)


def validate_separator(separator: str) -> str:
    """
    핸들 구분자가 사용 가능한지 검사합니다.

    Raises:
        InvalidConfigurationError: 구분자가 비어 있거나 예약된 문자일 때.
    """
    if not separator:
        raise InvalidConfigurationError("Handle separator must not be empty.")
    if any(reserved in separator for reserved in RESERVED_SEPARATORS):
        raise InvalidConfigurationError(
            f"Handle separator '{separator}' is reserved (',' and '|' are not allowed)."
        )
    return separator


def generate_handle(text: str, separator: str) -> str:
    """
    사람이 읽는 이름으로부터 URL/식별자로 안전한 핸들을 생성합니다.

    (예: generate_handle("Müller & Co.", "-") -> "mueller-co")

    Args:
        text: 원본 이름.
        separator: 단어 사이에 넣을 구분자.

    Returns:
        소문자 ASCII와 구분자로만 이루어진 핸들. 변환할 문자가 없으면 빈 문자열.
    """
    validate_separator(separator)
    transliterated = text.translate(_TRANSLATION).lower()
    # 양끝의 비영숫자 구간은 빈 조각이 되어 버려집니다. 구분자가 영숫자여도 글자를 잘라내지 않습니다.
    return separator.join(word for word in _NON_ALNUM.split(transliterated) if word)


class HandleGenerator:
    """하나의 구분자에 묶인 핸들 생성기. 구분자는 생성 시점에 한 번만 검증합니다."""

    def __init__(self, separator: str):
        self.separator = validate_separator(separator)

    def __call__(self, text: str) -> str:
        return generate_handle(text, self.separator)
