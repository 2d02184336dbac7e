"""Reading PEM objects from files or open handles."""

import os
import re
from dataclasses import dataclass
from typing import BinaryIO, Union

PemSource = Union[str, "os.PathLike[str]", BinaryIO]

_PEM_BLOCK = re.compile(
    rb"-----BEGIN (?P<label>[A-Z0-9 ]+)-----\r?\n.*?-----END (?P=label)-----",
    re.DOTALL,
)


@dataclass(frozen=True)
class PemBlock:
    """A single PEM object, boundary lines included."""

    label: str
    data: bytes

    @property
    def encrypted(self) -> bool:
        """True for PKCS#8 encrypted keys and traditional OpenSSL encrypted keys."""
        return self.label == "ENCRYPTED PRIVATE KEY" or b"Proc-Type: 4,ENCRYPTED" in self.data


def read_source(source: PemSource) -> bytes:
    """Read all bytes from a path or a readable handle.

    Paths are opened and closed here; handles belong to the caller and are
    left open.
    """
    if isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as f:
            return f.read()
    data = source.read()
    if isinstance(data, str):
        data = data.encode("ascii")
    return data


def first_block(data: bytes) -> PemBlock:
    """Return the first PEM object in ``data``.

    Raises:
        ValueError: If ``data`` holds no PEM object
    """
    match = _PEM_BLOCK.search(data)
    if match is None:
        raise ValueError("no PEM object found")
    return PemBlock(label=match.group("label").decode("ascii"), data=match.group(0) + b"\n")
