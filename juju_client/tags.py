"""Entity tag conventions used on the wire.

Tags are only built when a request is composed and only parsed when a
response is reshaped; the rest of the package works with bare names.

User tags come in two flavours. ``user_tag`` sends the caller's identifier
as given, ``qualified_user_tag`` appends the default domain to bare names.
Every operation states which one it uses.
"""

from __future__ import annotations

USER_PREFIX = "user-"
MODEL_PREFIX = "model-"
CLOUD_PREFIX = "cloud-"
CREDENTIAL_PREFIX = "cloudcred-"

DEFAULT_DOMAIN = "local"


def qualify_user(name: str, domain: str = DEFAULT_DOMAIN) -> str:
    if "@" in name:
        return name
    return f"{name}@{domain}"


def user_tag(name: str) -> str:
    return USER_PREFIX + name


def qualified_user_tag(name: str, domain: str = DEFAULT_DOMAIN) -> str:
    return USER_PREFIX + qualify_user(name, domain)


def model_tag(model_id: str) -> str:
    return MODEL_PREFIX + model_id


def cloud_tag(name: str) -> str:
    return CLOUD_PREFIX + name


def credential_tag(name: str) -> str:
    return CREDENTIAL_PREFIX + name


def strip_prefix(tag: str | None, prefix: str) -> str:
    if not tag:
        return ""
    if tag.startswith(prefix):
        return tag[len(prefix):]
    return tag


def entities(tags: list[str]) -> dict[str, list[dict[str, str]]]:
    return {"entities": [{"tag": tag} for tag in tags]}
