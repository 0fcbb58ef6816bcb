#!/usr/bin/env python3
import logging
import re
from binascii import unhexlify
from typing import (
    Any,
    BinaryIO,
    Generic,
    Optional,
    TypeVar,
    Union,
)

from pdfcontent import psexceptions, settings
from pdfcontent.utils import choplist

log = logging.getLogger(__name__)


PSException = psexceptions.PSException
PSEOF = psexceptions.PSEOF
PSSyntaxError = psexceptions.PSSyntaxError
PSTypeError = psexceptions.PSTypeError
PSValueError = psexceptions.PSValueError


class PSObject:
    """Base class for all content stream data types."""


class PSLiteral(PSObject):
    """A class that represents a PDF name.

    Names are used as identifiers, such as resource names,
    property names and dictionary keys. They are case sensitive
    and denoted by a preceding slash sign (e.g. "/Name")

    Note: Do not create an instance of PSLiteral directly.
    Always use PSLiteralTable.intern().
    """

    NameType = Union[str, bytes]

    def __init__(self, name: NameType) -> None:
        self.name = name

    def __repr__(self) -> str:
        name = self.name
        return "/%r" % name


class PSKeyword(PSObject):
    """A class that represents a content stream operator.

    Operators are the bare words of a content stream ("re", "Tj",
    "q"). They are also used to denote the boundaries of arrays,
    dictionaries and inline images.

    Note: Do not create an instance of PSKeyword directly.
    Always use PSKeywordTable.intern().
    """

    def __init__(self, name: bytes) -> None:
        self.name = name

    def __repr__(self) -> str:
        return "<PSKeyword %s>" % self.name.decode("latin-1")


_SymbolT = TypeVar("_SymbolT", PSLiteral, PSKeyword)


class PSSymbolTable(Generic[_SymbolT]):
    """A utility class for storing PSLiteral/PSKeyword objects.

    Interned objects can be checked its identity with "is" operator.
    """

    def __init__(self, klass: type[_SymbolT]) -> None:
        self.dict: dict[PSLiteral.NameType, _SymbolT] = {}
        self.klass: type[_SymbolT] = klass

    def intern(self, name: PSLiteral.NameType) -> _SymbolT:
        if name in self.dict:
            lit = self.dict[name]
        else:
            # PSKeyword always takes bytes, PSLiteral either str or bytes
            lit = self.klass(name)  # type: ignore[arg-type]
            self.dict[name] = lit
        return lit


PSLiteralTable = PSSymbolTable(PSLiteral)
PSKeywordTable = PSSymbolTable(PSKeyword)
LIT = PSLiteralTable.intern
KWD = PSKeywordTable.intern
KEYWORD_ARRAY_BEGIN = KWD(b"[")
KEYWORD_ARRAY_END = KWD(b"]")
KEYWORD_DICT_BEGIN = KWD(b"<<")
KEYWORD_DICT_END = KWD(b">>")


def literal_name(x: Any) -> str:
    if isinstance(x, PSLiteral):
        if isinstance(x.name, str):
            return x.name
        try:
            return str(x.name, "utf-8")
        except UnicodeDecodeError:
            return str(x.name)
    else:
        if settings.STRICT:
            raise PSTypeError(f"Literal required: {x!r}")
        return str(x)


WHITESPACE = b" \t\n\r\f\v\x00"
ESC_STRING = {
    b"b": 8,
    b"t": 9,
    b"n": 10,
    b"f": 12,
    b"r": 13,
    b"(": 40,
    b")": 41,
    b"\\": 92,
}


PSBaseParserToken = Union[float, bool, None, PSLiteral, PSKeyword, bytes]


LEXER = re.compile(
    rb"""(?:
      (?P<whitespace> [\s\x00]+)
    | (?P<comment> %[^\r\n]*)
    | (?P<name> /(?: \#[A-Fa-f\d][A-Fa-f\d] | [^#/%\[\]()<>{}\s\x00])* )
    | (?P<number> [-+]? (?: \d+\.\d* | \.\d+ | \d+ ) )
    | (?P<keyword> [A-Za-z] [^#/%\[\]()<>{}\s\x00]*)
    | (?P<startstr> \([^()\\]*)
    | (?P<hexstr> <[A-Fa-f\d\s]*>)
    | (?P<startdict> <<)
    | (?P<enddict> >>)
    | (?P<other> .)
)
""",
    re.VERBOSE | re.DOTALL,
)
STRLEXER = re.compile(
    rb"""(?:
      (?P<octal> \\[0-7]{1,3})
    | (?P<linebreak> \\(?:\r\n?|\n))
    | (?P<escape> \\.)
    | (?P<parenleft> \()
    | (?P<parenright> \))
    | (?P<newline> \r\n?|\n)
    | (?P<other> .)
)""",
    re.VERBOSE | re.DOTALL,
)
HEXDIGIT = re.compile(rb"#([A-Fa-f\d][A-Fa-f\d])")
EOLR = re.compile(rb"\r\n?|\n")
SPC = re.compile(rb"\s")
# "EI" standing alone: preceded by whitespace (or the start of the data)
# and followed by whitespace, a delimiter or the end of the buffer.
INLINE_END = re.compile(rb"(?:(?<=[\s\x00])|^)EI(?=[\s\x00/\[<(%]|$)")


class PSBaseParser:
    """Lexer for in-memory content stream data."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.end = len(data)
        self.seek(0)

    def seek(self, pos: int) -> None:
        """Seek to a position and reinitialize parser state."""
        self.pos = pos
        self._curtoken = b""
        self._curtokenpos = 0

    def tell(self) -> int:
        """Get the current position in the buffer."""
        return self.pos

    def get_inline_data(
        self, pos: int, eod: Optional[bytes] = None
    ) -> tuple[int, bytes, int]:
        """Get the raw data of an inline image, starting at `pos`
        (just after the "ID" operator).

        Returns a tuple of the position of the data, the data itself
        and the position of the closing "EI", or -1 if the buffer ends
        first.  The single whitespace character after "ID" and the one
        before "EI" are not part of the data.  If `eod` is given (the
        end-of-data marker of an ASCII filter), "EI" is only searched
        for after it.  Advances the position past "EI".
        """
        start = pos
        if self.data[start : start + 1] and self.data[start] in WHITESPACE:
            start += 1
        search_from = start
        if eod is not None:
            epos = self.data.find(eod, start)
            if epos != -1:
                search_from = epos + len(eod)
        m = INLINE_END.search(self.data, search_from)
        if m is None:
            log.warning("Inline image data at %d is not terminated by EI", start)
            self.pos = self.end
            return (start, self.data[start:], -1)
        eipos = m.start()
        data = self.data[start:eipos]
        if data.endswith(b"\r\n"):
            data = data[:-2]
        elif data[-1:] and data[-1] in WHITESPACE:
            data = data[:-1]
        self.pos = m.end()
        return (start, data, eipos)

    def nexttoken(self) -> tuple[int, PSBaseParserToken]:
        """Get the next token in iteration, raising PSEOF when done."""
        try:
            return self.__next__()
        except StopIteration:
            raise PSEOF

    def __next__(self) -> tuple[int, PSBaseParserToken]:
        """Get the next token in iteration, raising StopIteration when
        done."""
        while True:
            m = LEXER.match(self.data, self.pos)
            if m is None:  # can only happen at EOS
                raise StopIteration
            self._curtokenpos = m.start()
            self.pos = m.end()
            if m.lastgroup not in ("whitespace", "comment"):  # type: ignore
                # Okay, we got a token or something
                break
        self._curtoken = m[0]
        if m.lastgroup == "name":  # type: ignore
            self._curtoken = m[0][1:]
            self._curtoken = HEXDIGIT.sub(
                lambda x: bytes((int(x[1], 16),)), self._curtoken
            )
            try:
                tok = LIT(self._curtoken.decode("utf-8"))
            except UnicodeDecodeError:
                tok = LIT(self._curtoken)
            return (self._curtokenpos, tok)
        if m.lastgroup == "number":  # type: ignore
            if b"." in self._curtoken:
                return (self._curtokenpos, float(self._curtoken))
            else:
                return (self._curtokenpos, int(self._curtoken))
        if m.lastgroup == "startdict":  # type: ignore
            return (self._curtokenpos, KEYWORD_DICT_BEGIN)
        if m.lastgroup == "enddict":  # type: ignore
            return (self._curtokenpos, KEYWORD_DICT_END)
        if m.lastgroup == "startstr":  # type: ignore
            return self._parse_endstr(self.data[m.start() + 1 : m.end()], m.end())
        if m.lastgroup == "hexstr":  # type: ignore
            self._curtoken = SPC.sub(b"", self._curtoken[1:-1])
            if len(self._curtoken) % 2 == 1:
                self._curtoken += b"0"
            return (self._curtokenpos, unhexlify(self._curtoken))
        # Anything else is treated as a keyword (whether explicitly matched or not)
        if self._curtoken == b"true":
            return (self._curtokenpos, True)
        elif self._curtoken == b"false":
            return (self._curtokenpos, False)
        elif self._curtoken == b"null":
            return (self._curtokenpos, None)
        else:
            return (self._curtokenpos, KWD(self._curtoken))

    def _parse_endstr(self, start: bytes, pos: int) -> tuple[int, PSBaseParserToken]:
        """Parse the remainder of a string."""
        # Unescaped end-of-line markers inside strings read as \n (PDF 1.7, p.15)
        parts = [EOLR.sub(b"\n", start)]
        paren = 1
        for m in STRLEXER.finditer(self.data, pos):
            self.pos = m.end()
            if m.lastgroup == "parenright":  # type: ignore
                paren -= 1
                if paren == 0:
                    # By far the most common situation!
                    break
                parts.append(m[0])
            elif m.lastgroup == "parenleft":  # type: ignore
                parts.append(m[0])
                paren += 1
            elif m.lastgroup == "escape":  # type: ignore
                chr = m[0][1:2]
                if chr not in ESC_STRING:
                    log.warning("Unrecognized escape %r", m[0])
                    parts.append(chr)
                else:
                    parts.append(bytes((ESC_STRING[chr],)))
            elif m.lastgroup == "octal":  # type: ignore
                chrcode = int(m[0][1:], 8)
                if chrcode >= 256:
                    # PDF1.7 p.16: "high-order overflow shall be
                    # ignored."
                    log.warning("Invalid octal %r (%d)", m[0][1:], chrcode)
                else:
                    parts.append(bytes((chrcode,)))
            elif m.lastgroup == "newline":  # type: ignore
                parts.append(b"\n")
            elif m.lastgroup == "linebreak":  # type: ignore
                pass
            else:
                parts.append(m[0])
        if paren != 0:
            log.warning("Unterminated string at %d", pos)
            self.pos = self.end
            raise StopIteration
        return (self._curtokenpos, b"".join(parts))


# Stack slots may by occupied by any of:
#  * the PSBaseParserToken types
#  * list (via KEYWORD_ARRAY)
#  * dict (via KEYWORD_DICT)
#  * subclass-specific extensions (e.g. PDFInlineData) via ExtraT
ExtraT = TypeVar("ExtraT")
PSStackType = Union[float, bool, None, PSLiteral, bytes, list, dict, ExtraT]
PSStackEntry = tuple[int, PSStackType[ExtraT]]


class PSStackParser(Generic[ExtraT]):
    """Builds arrays and dictionaries out of the tokens of a content
    stream, given as `bytes` or a binary file."""

    def __init__(self, reader: Union[BinaryIO, bytes]) -> None:
        self.reinit(reader)

    def reinit(self, reader: Union[BinaryIO, bytes]) -> None:
        """Reinitialize parser with a new file or buffer."""
        if not isinstance(reader, bytes):
            reader = reader.read()
        self._parser = PSBaseParser(reader)
        self.reset()

    def reset(self) -> None:
        """Reset parser state."""
        self.context: list[tuple[int, Optional[str], list[PSStackEntry[ExtraT]]]] = []
        self.curtype: Optional[str] = None
        self.curstack: list[PSStackEntry[ExtraT]] = []
        self.results: list[PSStackEntry[ExtraT]] = []

    def tell(self) -> int:
        return self._parser.tell()

    def push(self, *objs: PSStackEntry[ExtraT]) -> None:
        """Push some objects onto the stack."""
        self.curstack.extend(objs)

    def popall(self) -> list[PSStackEntry[ExtraT]]:
        """Pop all the things off the stack."""
        objs = self.curstack
        self.curstack = []
        return objs

    def add_results(self, *objs: PSStackEntry[ExtraT]) -> None:
        """Move some objects to the output."""
        try:
            log.debug("add_results: %r", objs)
        except Exception:
            log.debug("add_results: (unprintable object)")
        self.results.extend(objs)

    def start_type(self, pos: int, type: str) -> None:
        """Start a composite object (array or dict)."""
        self.context.append((pos, self.curtype, self.curstack))
        (self.curtype, self.curstack) = (type, [])
        log.debug("start_type: pos=%r, type=%r", pos, type)

    def end_type(self, type: str) -> tuple[int, list[PSStackType[ExtraT]]]:
        """End a composite object (array or dict)."""
        if self.curtype != type:
            raise PSTypeError(f"Type mismatch: {self.curtype!r} != {type!r}")
        objs = [obj for (_, obj) in self.curstack]
        (pos, self.curtype, self.curstack) = self.context.pop()
        log.debug("end_type: pos=%r, type=%r, objs=%r", pos, type, objs)
        return (pos, objs)

    def do_keyword(self, pos: int, token: PSKeyword) -> None:
        """Handle an operator."""
        pass

    def flush(self) -> None:
        """Get everything off the stack and into the output?"""
        pass

    def nextobject(self) -> PSStackEntry[ExtraT]:
        """Yields a list of objects.

        Arrays and dictionaries are represented as Python lists and
        dictionaries.

        :return: keywords, literals, strings, numbers, arrays and dictionaries.
        """
        while not self.results:
            (pos, token) = self.nexttoken()
            if token is None or isinstance(
                token, (int, float, bool, str, bytes, PSLiteral)
            ):
                # normal token
                self.push((pos, token))
            elif token is KEYWORD_ARRAY_BEGIN:
                # begin array
                self.start_type(pos, "a")
            elif token is KEYWORD_ARRAY_END:
                # end array
                try:
                    self.push(self.end_type("a"))
                except PSTypeError:
                    if settings.STRICT:
                        raise
            elif token is KEYWORD_DICT_BEGIN:
                # begin dictionary
                self.start_type(pos, "d")
            elif token is KEYWORD_DICT_END:
                # end dictionary
                try:
                    (pos, objs) = self.end_type("d")
                    if len(objs) % 2 != 0:
                        error_msg = "Invalid dictionary construct: %r" % objs
                        if settings.STRICT:
                            raise PSSyntaxError(error_msg)
                        log.warning(error_msg)
                    d = {
                        literal_name(k): v
                        for (k, v) in choplist(2, objs)
                        if v is not None
                    }
                    self.push((pos, d))
                except PSTypeError:
                    if settings.STRICT:
                        raise
            elif isinstance(token, PSKeyword):
                log.debug(
                    "do_keyword: pos=%r, token=%r, stack=%r",
                    pos,
                    token,
                    self.curstack,
                )
                self.do_keyword(pos, token)
            else:
                log.error(
                    "unknown token: pos=%r, token=%r, stack=%r",
                    pos,
                    token,
                    self.curstack,
                )
                raise PSException
            if self.context:
                continue
            else:
                self.flush()
        obj = self.results.pop(0)
        try:
            log.debug("nextobject: %r", obj)
        except Exception:
            log.debug("nextobject: (unprintable object)")
        return obj

    # Delegation follows
    def nexttoken(self) -> tuple[int, PSBaseParserToken]:
        """Get the next token in iteration, raising PSEOF when done."""
        return self._parser.nexttoken()

    def get_inline_data(
        self, pos: int, eod: Optional[bytes] = None
    ) -> tuple[int, bytes, int]:
        """Get the raw data of an inline image up to the closing "EI"."""
        return self._parser.get_inline_data(pos, eod)
