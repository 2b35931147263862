"""
秘匿値ユーティリティ

認証トークン・パスワード・セッションCookieなどを扱うためのラッパーと、
デバッグログ出力前に辞書中の秘匿フィールドを伏せる関数を提供します。
"""

from collections.abc import Mapping, Sequence
from typing import Any

REDACTED = "<redacted>"

_SENSITIVE_KEYS = frozenset({
    "password",
    "pass",
    "mail",
    "auth_token",
    "authtoken",
    "x-radiko-authtoken",
    "x-radiko-partialkey",
    "partial_key",
    "partialkey",
    "radiko_session",
    "cookie",
    "set-cookie",
    "authorization",
})


class SensitiveValue:
    """文字列表現で自身を伏せる秘匿値ラッパー

    値の取り出しは reveal() のみ。str/repr/format はすべて伏字になる。
    """

    __slots__ = ("_value",)

    def __init__(self, value: str):
        if isinstance(value, SensitiveValue):
            value = value.reveal()
        if not isinstance(value, str):
            raise TypeError("SensitiveValue には文字列を指定してください")
        object.__setattr__(self, "_value", value)

    def __setattr__(self, name, value):
        raise AttributeError("SensitiveValue は変更できません")

    def reveal(self) -> str:
        """生の値を返す"""
        return self._value

    def matches(self, other: str) -> bool:
        """生の値と比較"""
        if isinstance(other, SensitiveValue):
            other = other.reveal()
        return self._value == other

    def __eq__(self, other):
        if isinstance(other, SensitiveValue):
            return self._value == other._value
        return NotImplemented

    def __hash__(self):
        return hash(self._value)

    def __bool__(self):
        return bool(self._value)

    def __len__(self):
        return len(self._value)

    def __str__(self):
        return REDACTED

    def __repr__(self):
        return f"SensitiveValue({REDACTED})"

    def __format__(self, format_spec):
        return format(REDACTED, format_spec)


def reveal(value: Any) -> Any:
    """SensitiveValue なら生の値、それ以外はそのまま返す"""
    if isinstance(value, SensitiveValue):
        return value.reveal()
    return value


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """ログ出力用に秘匿フィールドを伏せたコピーを返す"""
    if _depth > 10:
        return "<max-depth>"

    if value is None or isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, SensitiveValue):
        return REDACTED

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}...<truncated>"
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in _SENSITIVE_KEYS:
                redacted[key] = REDACTED
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    return repr(value)
