"""Binary program images.

An image is the Encoded Words of a program, two bytes per word, most
significant byte first (opcode and register nibbles, then the operand).
"""

import logging
from pathlib import Path
from typing import List, Sequence, Union

from .errors import ImageFormatError
from .isa import WORD_MASK

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def to_bytes(words: Sequence[int]) -> bytes:
    """Serialize words into big-endian bytes.

    Raises:
        ValueError: If a word is not a 16-bit value
    """
    data = bytearray()
    for address, word in enumerate(words):
        if not 0 <= word <= WORD_MASK:
            raise ValueError(f"word at address {address} is not a 16-bit value: {word}")
        data += word.to_bytes(2, "big")
    return bytes(data)


def from_bytes(data: bytes) -> List[int]:
    """Split big-endian bytes into words.

    Raises:
        ImageFormatError: If the byte count is odd
    """
    if len(data) % 2:
        raise ImageFormatError(f"image length {len(data)} is not a whole number of 16-bit words")
    return [int.from_bytes(data[i:i + 2], "big") for i in range(0, len(data), 2)]


def write_image(path: PathLike, words: Sequence[int]) -> None:
    data = to_bytes(words)
    Path(path).write_bytes(data)
    logger.debug("wrote %d words to %s", len(words), path)


def read_image(path: PathLike) -> List[int]:
    words = from_bytes(Path(path).read_bytes())
    logger.debug("read %d words from %s", len(words), path)
    return words
