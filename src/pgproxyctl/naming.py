"""Container name derivation for proxy configurations."""

import hashlib
import re
from pathlib import PurePath

from .constants import NAMESPACE_PREFIX

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def config_stem(name: str) -> str:
    # PurePath does not treat backslashes as separators on POSIX.
    base = PurePath(name.replace("\\", "/")).name
    stem, dot, _suffix = base.rpartition(".")
    if dot and stem:
        return stem
    return base


def derive_instance_identity(name: str) -> str:
    """Return the container name for the configuration called ``name``.

    The result only depends on ``name``: the same configuration always maps to
    the same container, and different stems never collide. Stems that Docker
    would reject are sanitized and suffixed with a short hash of the original.
    """
    stem = config_stem(name)
    safe = _UNSAFE_CHARS.sub("-", stem)
    if safe != stem or not stem:
        digest = hashlib.sha256(stem.encode("utf-8")).hexdigest()[:8]
        safe = f"{safe or 'default'}-{digest}"
    return f"{NAMESPACE_PREFIX}_{safe}"
