from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path

# Placed between the stem and the digest; the extension, if any, follows the digest.
SEPARATOR = "-"

DIGEST_LEN = 64

_HASHED_NAME = re.compile(
    r"^(?P<stem>.*)" + re.escape(SEPARATOR) + r"(?P<digest>[0-9a-f]{64})(?:\.(?P<extension>[^.]*))?$"
)

def sha256_bytes(b: bytes) -> str:
    return hashlib.sha256(b).hexdigest()

def sha256_file(path: Path) -> str:
    # Whole file in memory; assets are expected to be small.
    return sha256_bytes(Path(path).read_bytes())

@dataclass(frozen=True)
class HashedName:
    stem: str
    digest: str
    extension: str | None = None

    @property
    def name(self) -> str:
        s = f"{self.stem}{SEPARATOR}{self.digest}"
        if self.extension is not None:
            s += f".{self.extension}"
        return s

    def __str__(self) -> str:
        return self.name

    @staticmethod
    def parse(name: str) -> "HashedName | None":
        """Split a rendered hashed name back into its parts.

        Returns None if `name` does not carry a digest.
        """
        m = _HASHED_NAME.match(name)
        if m is None:
            return None
        return HashedName(stem=m["stem"], digest=m["digest"], extension=m["extension"])

def split_name(name: str) -> tuple[str, str | None]:
    """Split a file name at its last dot into (stem, extension).

    "a.tar.gz" -> ("a.tar", "gz"), ".env" -> (".env", None), "foo." -> ("foo", "").
    Done by hand so the result does not depend on the pathlib version.
    """
    i = name.rfind(".")
    if i <= 0:
        return name, None
    return name[:i], name[i + 1 :]

def hashed_name(path: Path) -> HashedName:
    p = Path(path)
    digest = sha256_file(p)
    stem, extension = split_name(p.name)
    return HashedName(stem=stem, digest=digest, extension=extension)

def hashed_file_name(path: Path) -> str:
    """Hash the file at `path` and return its name with the digest added before the extension."""
    return hashed_name(path).name
