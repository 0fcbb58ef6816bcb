"""Functions that can be used for the most common use-cases for pdfcontent"""

import logging
from typing import Any, BinaryIO, Optional, TextIO, Union

from pdfcontent.contentstream import (
    ContentStreamInlineImage,
    Instruction,
    parse_content_stream,
    unparse_content_stream,
)
from pdfcontent.pdftypes import operator_name, unparse
from pdfcontent.utils import make_compat_str, shorten_str

log = logging.getLogger(__name__)


def filter_content_stream(data: Union[BinaryIO, bytes], operators: str) -> bytes:
    """Keep only the instructions whose operator is listed in `operators`
    (space separated), and write the result back as a content stream."""
    return unparse_content_stream(parse_content_stream(data, operators))


def format_operand(obj: Any) -> str:
    """Readable form of an operand; strings are decoded for display."""
    if isinstance(obj, bytes):
        try:
            text = obj.decode("ascii")
        except UnicodeDecodeError:
            text = make_compat_str(obj)
        return "(%s)" % shorten_str(text, 60)
    if isinstance(obj, list):
        return "[%s]" % " ".join(format_operand(v) for v in obj)
    return str(unparse(obj), "latin-1")


def format_instruction(instruction: Instruction) -> str:
    if isinstance(instruction, ContentStreamInlineImage):
        return repr(instruction.get_inline_image())
    words = [format_operand(obj) for obj in instruction.operands]
    words.append(operator_name(instruction.operator))
    return " ".join(words)


def dump_content_stream(
    outfp: Union[TextIO, BinaryIO],
    data: Union[BinaryIO, bytes],
    operators: str = "",
    codec: Optional[str] = None,
) -> None:
    """Write the instructions of a content stream to `outfp`.

    :param codec: None for one readable line per instruction (`outfp`
        is a text file), 'binary' for the content stream bytes (`outfp`
        is a binary file).
    """
    instructions = parse_content_stream(data, operators)
    log.debug("dump_content_stream: %d instructions", len(instructions))
    if codec == "binary":
        outfp.write(unparse_content_stream(instructions))  # type: ignore[arg-type]
        return
    for instruction in instructions:
        outfp.write(format_instruction(instruction) + "\n")  # type: ignore[arg-type]
