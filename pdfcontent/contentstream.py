"""Grouping of content stream tokens into instructions, and back.

A content stream is a flat run of operands, each group closed by an
operator.  `parse_content_stream` turns it into a list of
`ContentStreamInstruction` and `ContentStreamInlineImage` objects;
`unparse_content_stream` writes such a list (or plain
``(operands, operator)`` pairs) back to bytes.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any, BinaryIO, Optional, Union

from pdfcontent import settings
from pdfcontent.image import PDFInlineImage
from pdfcontent.pdfexceptions import PDFTypeError, PDFValueError
from pdfcontent.pdftypes import (
    LITERALS_ASCII85_DECODE,
    LITERALS_ASCIIHEX_DECODE,
    PDFInlineData,
    encode,
    is_operator,
    new_operator,
    operator_name,
    unparse,
)
from pdfcontent.psexceptions import PSEOF, PSSyntaxError, PSValueError
from pdfcontent.psparser import KWD, PSKeyword, PSLiteral, PSStackParser, literal_name

log = logging.getLogger(__name__)

ImageFactory = Callable[..., Any]

INLINE_IMAGE_OPERATOR = "INLINE IMAGE"
KEYWORD_INLINE_IMAGE = KWD(INLINE_IMAGE_OPERATOR.encode("ascii"))


def _as_operator(operator: Union[str, bytes, PSKeyword]) -> PSKeyword:
    if isinstance(operator, (str, bytes)):
        return new_operator(operator)
    if not is_operator(operator):
        raise PDFTypeError("Operator must be a PSKeyword, bytes or str: %r" % operator)
    return operator


class ContentStreamInstruction:
    """An operator together with the operands that precede it."""

    def __init__(
        self,
        operands: Iterable[Any],
        operator: Union[str, bytes, PSKeyword],
    ) -> None:
        self.operands = operands  # type: ignore[assignment]
        self._operator = _as_operator(operator)

    @property
    def operands(self) -> list[Any]:
        return self._operands

    @operands.setter
    def operands(self, objlist: Iterable[Any]) -> None:
        self._operands = [encode(obj) for obj in objlist]

    @property
    def operator(self) -> PSKeyword:
        return self._operator

    def __getitem__(self, index: int) -> Any:
        if index in (0, -2):
            return self.operands
        elif index in (1, -1):
            return self.operator
        raise IndexError("Invalid index %r" % (index,))

    def __len__(self) -> int:
        return 2

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContentStreamInstruction):
            return NotImplemented
        return self.operator is other.operator and self.operands == other.operands

    def __repr__(self) -> str:
        return "<ContentStreamInstruction: %r %s>" % (
            self.operands,
            operator_name(self.operator),
        )

    def unparse(self) -> bytes:
        return b"".join(unparse(obj) + b" " for obj in self.operands) + unparse(
            self.operator
        )


class ContentStreamInlineImage:
    """An inline image, kept as the metadata tokens and raw data it was
    read from.

    The image value is built by `image_factory` every time it is asked
    for; nothing is cached.
    """

    def __init__(
        self,
        image_metadata: Sequence[Any],
        image_data: PDFInlineData,
        image_factory: ImageFactory = PDFInlineImage,
    ) -> None:
        self.image_metadata = list(image_metadata)
        self.image_data = image_data
        self.image_factory = image_factory

    @property
    def operator(self) -> PSKeyword:
        return KEYWORD_INLINE_IMAGE

    @property
    def operands(self) -> list[Any]:
        return [self.get_inline_image()]

    def get_inline_image(self) -> Any:
        return self.image_factory(
            image_data=self.image_data, image_object=self.image_metadata
        )

    def __getitem__(self, index: int) -> Any:
        if index in (0, -2):
            return self.operands
        elif index in (1, -1):
            return self.operator
        raise IndexError("Invalid index %r" % (index,))

    def __len__(self) -> int:
        return 2

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContentStreamInlineImage):
            return NotImplemented
        return (
            self.image_metadata == other.image_metadata
            and self.image_data == other.image_data
        )

    def __repr__(self) -> str:
        return "<ContentStreamInlineImage: %r, %r>" % (
            self.image_metadata,
            self.image_data,
        )

    def unparse(self) -> bytes:
        return self.get_inline_image().unparse()


Instruction = Union[ContentStreamInstruction, ContentStreamInlineImage]


class ParserCallbacks:
    """Receives the objects of a content stream, one at a time."""

    def handle_object(self, obj: Any, offset: int, length: int) -> None:
        pass

    def handle_eof(self) -> None:
        raise NotImplementedError


class OperandGrouper(ParserCallbacks):
    """Collects operands and closes an instruction at every operator.

    `operators` is a space separated whitelist; when it is not empty
    any other operator is dropped along with its operands.  "q" and "Q"
    are admitted together when either is listed, so that the save and
    restore pairs stay balanced.
    """

    def __init__(
        self, operators: str = "", image_factory: ImageFactory = PDFInlineImage
    ) -> None:
        names = operators.split(" ")
        if names[-1] == "":
            # A trailing space does not add a name; "" is no whitelist at all
            names.pop()
        self.whitelist = set(names)
        self.image_factory = image_factory
        self.tokens: list[Any] = []
        self.parsing_inline_image = False
        self.inline_metadata: list[Any] = []
        self.instructions: list[Instruction] = []
        self.warning = ""
        self.count = 0
        self._finished = False

    def handle_object(self, obj: Any, offset: int = 0, length: int = 0) -> None:
        if self._finished:
            raise PSValueError("OperandGrouper cannot be fed after end of stream")
        self.count += 1
        if not is_operator(obj):
            self.tokens.append(obj)
            return

        op = operator_name(obj)
        if self.whitelist:
            if op[:1] in ("q", "Q"):
                # A run such as "qqQ" counts as save/restore too
                if "q" not in self.whitelist and "Q" not in self.whitelist:
                    log.debug("handle_object: drop %r at %d", op, offset)
                    self.tokens.clear()
                    return
            elif op not in self.whitelist:
                log.debug("handle_object: drop %r at %d", op, offset)
                self.tokens.clear()
                return

        if op == "BI":
            self.parsing_inline_image = True
        elif self.parsing_inline_image:
            if op == "ID":
                self.inline_metadata = self.tokens
                self.tokens = []
            elif op == "EI":
                self.instructions.append(
                    ContentStreamInlineImage(
                        self.inline_metadata,
                        self._inline_data(offset),
                        self.image_factory,
                    )
                )
                self.inline_metadata = []
                self.parsing_inline_image = False
        else:
            self.instructions.append(ContentStreamInstruction(self.tokens, obj))
        self.tokens = []

    def _inline_data(self, offset: int) -> PDFInlineData:
        if len(self.tokens) != 1:
            # Only the first token is kept, whatever was collected
            if settings.STRICT:
                raise PSSyntaxError(
                    "Expected 1 data token for inline image at %d, got %d"
                    % (offset, len(self.tokens))
                )
            log.debug(
                "inline image at %d has %d data tokens", offset, len(self.tokens)
            )
        if not self.tokens:
            return PDFInlineData(b"")
        data = self.tokens[0]
        if isinstance(data, bytes):
            data = PDFInlineData(data)
        return data

    def handle_eof(self) -> None:
        self._finished = True
        if self.tokens:
            self.warning = "Unexpected end of stream"

    def get_instructions(self) -> list[Instruction]:
        return list(self.instructions)

    def get_warning(self) -> str:
        return self.warning


class PDFContentParser(PSStackParser[PDFInlineData]):
    """Walks the bytes of a content stream and reports every top level
    object, with its offset and length, to a `ParserCallbacks`."""

    KEYWORD_BI = KWD(b"BI")
    KEYWORD_ID = KWD(b"ID")
    KEYWORD_EI = KWD(b"EI")

    def __init__(self, data: Union[BinaryIO, bytes]) -> None:
        PSStackParser.__init__(self, data)

    def flush(self) -> None:
        self.add_results(*self.popall())

    def do_keyword(self, pos: int, token: PSKeyword) -> None:
        self.push((pos, token))

    def parse(self, callbacks: ParserCallbacks) -> None:
        inline_objs: Optional[list[Any]] = None
        while True:
            try:
                (pos, obj) = self.nextobject()
            except PSEOF:
                if self.context:
                    log.warning("Unterminated array or dictionary at end of stream")
                break
            callbacks.handle_object(obj, pos, self.tell() - pos)
            if obj is self.KEYWORD_BI:
                inline_objs = []
            elif obj is self.KEYWORD_ID:
                eod = self._end_of_data(inline_objs or [])
                (datapos, data, eipos) = self.get_inline_data(self.tell(), eod)
                callbacks.handle_object(PDFInlineData(data), datapos, len(data))
                inline_objs = None
                if eipos == -1:
                    break
                callbacks.handle_object(self.KEYWORD_EI, eipos, 2)
            elif inline_objs is not None:
                inline_objs.append(obj)
        callbacks.handle_eof()

    @staticmethod
    def _end_of_data(objs: list[Any]) -> Optional[bytes]:
        """ASCII filtered image data ends with its own marker, which has
        to be found before looking for EI."""
        filters = None
        for i in range(0, len(objs) - 1, 2):
            if isinstance(objs[i], PSLiteral) and literal_name(objs[i]) in (
                "F",
                "Filter",
            ):
                filters = objs[i + 1]
        if isinstance(filters, list):
            filters = filters[0] if filters else None
        if filters in LITERALS_ASCII85_DECODE:
            return b"~>"
        if filters in LITERALS_ASCIIHEX_DECODE:
            return b">"
        return None


def parse_content_stream(
    data: Union[BinaryIO, bytes],
    operators: str = "",
    image_factory: ImageFactory = PDFInlineImage,
) -> list[Instruction]:
    """Parse a (decoded) content stream into instructions.

    :param operators: space separated operators to keep; all when empty.
    """
    grouper = OperandGrouper(operators, image_factory)
    PDFContentParser(data).parse(grouper)
    if grouper.get_warning():
        log.warning(grouper.get_warning())
    return grouper.get_instructions()


def unparse_content_stream(
    instructions: Iterable[Any],
    image_factory: ImageFactory = PDFInlineImage,
) -> bytes:
    """Write instructions back as a content stream, one per line.

    Besides the instruction classes, each item may be a pair
    ``(operands, operator)`` where the operator is a `PSKeyword`, str or
    bytes.  For the "INLINE IMAGE" operator the operands hold a single
    image value, which writes itself.
    """
    chunks = []
    for n, item in enumerate(instructions):
        if isinstance(item, (ContentStreamInstruction, ContentStreamInlineImage)):
            chunks.append(item.unparse())
        else:
            chunks.append(_unparse_pair(n, item, image_factory))
    return b"\n".join(chunks)


def _unparse_pair(n: int, item: Any, image_factory: ImageFactory) -> bytes:
    try:
        size = len(item)
    except TypeError:
        raise PDFTypeError(
            "Content stream instruction %d is not an (operands, operator) pair" % n
        )
    if size != 2:
        raise PDFValueError(
            "Wrong number of operands at content stream instruction %d; expected 2"
            % n
        )
    (operands, operator) = (item[0], item[1])
    if isinstance(operator, (str, bytes)):
        if not operator:
            raise PDFValueError("Empty operator at content stream instruction %d" % n)
        op = new_operator(operator)
    elif is_operator(operator):
        op = operator
    else:
        raise PDFTypeError(
            "At content stream instruction %d, the operator is not of type "
            "PSKeyword, bytes or str" % n
        )

    if operator_name(op) == INLINE_IMAGE_OPERATOR:
        try:
            iimage = operands[0]
        except (TypeError, IndexError, KeyError):
            iimage = None
        if isinstance(image_factory, type):
            valid = isinstance(iimage, image_factory)
        else:
            valid = callable(getattr(iimage, "unparse", None))
        if not valid:
            raise PDFValueError(
                "Expected %s as operand for instruction %d"
                % (getattr(image_factory, "__name__", image_factory), n)
            )
        return iimage.unparse()
    return b"".join(unparse(encode(obj)) + b" " for obj in operands) + unparse(op)
