"""SPIR-V grammar bindings generator for Mojo.

Generates typed Mojo declarations from a SPIR-V grammar registry
(spirv.core.grammar.json or an extinst.*.grammar.json, or the equivalent
XML form). Produces one .mojo source with the opcode table and one open
enumeration or flag set per operand kind.

Usage:
    python spirv_gen.py --grammar spirv.core.grammar.json --output spirv.mojo
    python spirv_gen.py --grammar extinst.glsl.std.450.grammar.json --extinst
"""

import argparse
import codecs
import io
import json
import keyword
import re
import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path


# ===--- Errors ---=== #


VALID_REGISTRY_ERROR_CODES = {
    "STRUCTURAL_ERROR",
    "INVALID_HEX_INT",
    "MISSING_OPCODE_PREFIX",
    "SINK_WRITE_FAILURE",
}


class RegistryError(Exception):
    """Fatal problem with one generation call.

    Every stage raises the first error it meets; nothing is retried. Callers
    must discard whatever the sink received before the error.
    """

    code = "STRUCTURAL_ERROR"

    def __init__(self, message: str, code: str | None = None):
        code = code or self.code
        if code not in VALID_REGISTRY_ERROR_CODES:
            raise ValueError(f"Unknown registry error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message


class StructuralError(RegistryError):
    code = "STRUCTURAL_ERROR"


class InvalidHexInt(RegistryError):
    code = "INVALID_HEX_INT"


class MissingOpcodePrefix(RegistryError):
    code = "MISSING_OPCODE_PREFIX"


class SinkWriteFailure(RegistryError):
    code = "SINK_WRITE_FAILURE"


def write_to_sink(sink, text: str) -> None:
    try:
        sink.write(text)
    except (OSError, ValueError) as err:
        raise SinkWriteFailure(f"Output sink rejected write: {err}") from err


# ===--- Identifier rendering ---=== #

# The SPIR-V grammar carries no vendor tag list (vk.xml has <tags>), so the
# default table mirrors the vendor prefixes in the SPIR-V extension registry.
DEFAULT_TAGS: tuple[str, ...] = ("AMD", "EXT", "GOOGLE", "INTEL", "KHR", "NV")

CASE_SNAKE = "snake"
CASE_SCREAMING = "screaming"
CASE_TITLE = "title"
CASE_CAMEL = "camel"
CASE_STYLES = frozenset({CASE_SNAKE, CASE_SCREAMING, CASE_TITLE, CASE_CAMEL})

_SEGMENT_BOUNDARY_RE = re.compile(
    r"(?<=[a-z])(?=[A-Z])|(?<=[0-9A-Z])(?=[A-Z][a-z])"
)


def split_segments(text: str) -> list[str]:
    """Split an identifier into words.

    Breaks on underscores, on a lowercase letter followed by an uppercase
    letter, and before a Titlecase word that follows a digit or an
    uppercase run ("FPRounding" -> "FP", "Rounding"). Digits stay with the
    word they follow, so "1D" and "Float16" are single segments.
    """
    segments = []
    for chunk in text.split("_"):
        segments.extend(s for s in _SEGMENT_BOUNDARY_RE.split(chunk) if s)
    return segments


class IdRenderer:
    """Re-cases raw grammar tokens while keeping vendor tags atomic.

    The tag table is fixed at construction. Rendered strings are cached per
    instance, keyed by (style, token).
    """

    def __init__(self, tags: tuple[str, ...] = DEFAULT_TAGS):
        self.tags = tuple(tags)
        self._cache: dict[tuple[str, str], str] = {}

    def author_tag(self, raw: str) -> str | None:
        for tag in self.tags:
            if raw.endswith(tag) and raw[: -len(tag)].rstrip("_"):
                return tag
        return None

    def render(self, style: str, raw: str) -> str:
        if style not in CASE_STYLES:
            raise ValueError(f"Unknown case style: {style}")

        key = (style, raw)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        tag = self.author_tag(raw)
        body = raw[: -len(tag)].rstrip("_") if tag else raw
        segments = split_segments(body)

        if style == CASE_SNAKE:
            words = [s.lower() for s in segments]
            if tag:
                words.append(tag.lower())
            text = "_".join(words)
        elif style == CASE_SCREAMING:
            words = [s.upper() for s in segments]
            if tag:
                words.append(tag)
            text = "_".join(words)
        else:
            words = [s[:1].upper() + s[1:].lower() for s in segments]
            if style == CASE_CAMEL and words:
                words[0] = words[0].lower()
            text = "".join(words) + (tag or "")

        self._cache[key] = text
        return text

    def render_with_case(self, sink, style: str, raw: str) -> None:
        write_to_sink(sink, self.render(style, raw))


# ===--- Registry model ---=== #


SHAPE_CORE = "core"
SHAPE_EXTENSION = "extension"
SHAPES = frozenset({SHAPE_CORE, SHAPE_EXTENSION})

CATEGORY_VALUE_ENUM = "ValueEnum"
CATEGORY_BIT_ENUM = "BitEnum"
ENUM_CATEGORIES = frozenset({CATEGORY_VALUE_ENUM, CATEGORY_BIT_ENUM})

MAX_OPCODE = 0xFFFF
MAX_ENUMERANT_INT = (1 << 31) - 1
MAX_UINT32 = 0xFFFFFFFF


@dataclass(frozen=True)
class Instruction:
    name: str
    opcode: int


@dataclass(frozen=True)
class Enumerant:
    """One named value of an operand kind.

    value is either the Int variant (a plain int, used by ValueEnum kinds)
    or the Bitflag variant (0x-prefixed hex text, used by BitEnum kinds).
    """

    name: str
    value: int | str


@dataclass
class OperandKind:
    kind: str
    category: str
    enumerants: list[Enumerant] | None = None


@dataclass
class CoreRegistry:
    copyright: list[str]
    magic_number: int | str
    major_version: int
    minor_version: int
    revision: int
    instructions: list[Instruction]
    operand_kinds: list[OperandKind]


@dataclass
class ExtensionRegistry:
    version: int
    instructions: list[Instruction]
    copyright: list[str] = field(default_factory=list)
    revision: int | None = None
    operand_kinds: list[OperandKind] = field(default_factory=list)


# ===--- Document loading ---=== #

# XML attributes that always stay text even when they look numeric.
_XML_TEXT_ATTRIBUTES = frozenset(
    {"opname", "kind", "category", "enumerant", "magic_number"}
)
_DECIMAL_RE = re.compile(r"[0-9]+")
_NUMERIC_TEXT_RE = re.compile(r"0x[0-9A-Fa-f]+|[0-9]+")


def load_document(raw: str | bytes) -> dict:
    """Decode a registry document into plain dicts and lists.

    Text whose first non-blank character is '<' is read as XML, anything
    else as JSON. XML bytes go to the parser untouched so the document's own
    encoding declaration applies; JSON bytes must be UTF-8.

    Raises:
        StructuralError: Undecodable bytes, malformed JSON/XML, or a top-level
            value that is not an object.
    """
    if isinstance(raw, bytes):
        raw = raw.removeprefix(codecs.BOM_UTF8)
        if raw.lstrip().startswith(b"<"):
            return _parse_xml(raw.lstrip())
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as err:
            raise StructuralError(f"Registry is not valid UTF-8: {err}") from err
    else:
        text = raw.lstrip("\ufeff")
        if text.lstrip().startswith("<"):
            return _parse_xml(text.lstrip())

    try:
        document = json.loads(text)
    except json.JSONDecodeError as err:
        raise StructuralError(f"Malformed registry JSON: {err}") from err
    if not isinstance(document, dict):
        raise StructuralError(
            f"registry: expected an object, got {type(document).__name__}"
        )
    return document


def _parse_xml(source: str | bytes) -> dict:
    # str input is fed to expat as UTF-8 regardless of the declared encoding.
    try:
        root = ET.fromstring(source)
    except ET.ParseError as err:
        raise StructuralError(f"Malformed registry XML: {err}") from err
    return _xml_to_document(root)


def _xml_attributes(el: ET.Element) -> dict:
    attrs = {}
    for key, text in el.attrib.items():
        if key not in _XML_TEXT_ATTRIBUTES and _DECIMAL_RE.fullmatch(text):
            attrs[key] = int(text)
        else:
            attrs[key] = text
    return attrs


def _xml_to_document(root: ET.Element) -> dict:
    if root.tag != "registry":
        raise StructuralError(f"registry: expected <registry> root, got <{root.tag}>")

    document = _xml_attributes(root)

    copyright_el = root.find("copyright")
    if copyright_el is not None:
        document["copyright"] = [
            line.text or "" for line in copyright_el.findall("line")
        ]

    instructions_el = root.find("instructions")
    if instructions_el is not None:
        document["instructions"] = [
            _xml_attributes(el) for el in instructions_el.findall("instruction")
        ]

    kinds_el = root.find("operand_kinds")
    if kinds_el is not None:
        kinds = []
        for kind_el in kinds_el.findall("operand_kind"):
            kind = _xml_attributes(kind_el)
            enumerant_els = kind_el.findall("enumerant")
            if enumerant_els:
                kind["enumerants"] = [_xml_attributes(e) for e in enumerant_els]
            kinds.append(kind)
        document["operand_kinds"] = kinds

    return document


# ===--- Structural decoding ---=== #


def _type_label(value: object) -> str:
    return type(value).__name__


def _require(mapping: dict, key: str, path: str) -> object:
    if key not in mapping:
        raise StructuralError(f"{path}: missing required field '{key}'")
    return mapping[key]


def _expect_int(value: object, path: str, upper: int | None = None) -> int:
    # bool is an int subclass; JSON true/false is never a number here.
    if isinstance(value, bool) or not isinstance(value, int):
        raise StructuralError(f"{path}: expected an integer, got {_type_label(value)}")
    if value < 0:
        raise StructuralError(f"{path}: value {value} must not be negative")
    if upper is not None and value > upper:
        raise StructuralError(f"{path}: value {value} out of range [0, {upper}]")
    return value


def _expect_str(value: object, path: str, non_empty: bool = False) -> str:
    if not isinstance(value, str):
        raise StructuralError(f"{path}: expected a string, got {_type_label(value)}")
    if non_empty and not value:
        raise StructuralError(f"{path}: must not be empty")
    return value


def _expect_list(value: object, path: str) -> list:
    if not isinstance(value, list):
        raise StructuralError(f"{path}: expected a list, got {_type_label(value)}")
    return value


def _expect_object(value: object, path: str) -> dict:
    if not isinstance(value, dict):
        raise StructuralError(f"{path}: expected an object, got {_type_label(value)}")
    return value


def decode_copyright(value: object) -> list[str]:
    lines = _expect_list(value, "copyright")
    return [_expect_str(line, f"copyright[{i}]") for i, line in enumerate(lines)]


def decode_magic_number(value: object) -> int | str:
    if isinstance(value, str):
        if not _NUMERIC_TEXT_RE.fullmatch(value):
            raise StructuralError(f"magic_number: not a numeric literal: {value!r}")
        number = int(value, 16) if value.startswith("0x") else int(value)
        if number > MAX_UINT32:
            raise StructuralError(
                f"magic_number: value {value} out of range [0, {MAX_UINT32}]"
            )
        return value
    return _expect_int(value, "magic_number", MAX_UINT32)


def decode_instructions(value: object) -> list[Instruction]:
    instructions = []
    for i, raw in enumerate(_expect_list(value, "instructions")):
        path = f"instructions[{i}]"
        entry = _expect_object(raw, path)
        name = _expect_str(
            _require(entry, "opname", path), f"{path}.opname", non_empty=True
        )
        opcode = _expect_int(
            _require(entry, "opcode", path), f"{path}.opcode", MAX_OPCODE
        )
        instructions.append(Instruction(name=name, opcode=opcode))
    return instructions


def decode_enumerant(raw: object, category: str, path: str) -> Enumerant:
    entry = _expect_object(raw, path)
    name = _expect_str(
        _require(entry, "enumerant", path), f"{path}.enumerant", non_empty=True
    )
    value = _require(entry, "value", path)
    if category == CATEGORY_VALUE_ENUM:
        value = _expect_int(value, f"{path}.value", MAX_ENUMERANT_INT)
    elif not isinstance(value, str):
        raise StructuralError(
            f"{path}.value: BitEnum values must be hex strings, got {_type_label(value)}"
        )
    return Enumerant(name=name, value=value)


def decode_operand_kinds(value: object) -> list[OperandKind]:
    kinds = []
    for i, raw in enumerate(_expect_list(value, "operand_kinds")):
        path = f"operand_kinds[{i}]"
        entry = _expect_object(raw, path)
        kind = _expect_str(_require(entry, "kind", path), f"{path}.kind", non_empty=True)
        category = _expect_str(_require(entry, "category", path), f"{path}.category")

        if category not in ENUM_CATEGORIES:
            kinds.append(OperandKind(kind=kind, category=category))
            continue

        raw_enumerants = _expect_list(
            _require(entry, "enumerants", path), f"{path}.enumerants"
        )
        if not raw_enumerants:
            raise StructuralError(f"{path}.enumerants: {category} must not be empty")
        enumerants = [
            decode_enumerant(e, category, f"{path}.enumerants[{j}]")
            for j, e in enumerate(raw_enumerants)
        ]
        kinds.append(OperandKind(kind=kind, category=category, enumerants=enumerants))
    return kinds


def decode_core(document: dict) -> CoreRegistry:
    path = "registry"
    return CoreRegistry(
        copyright=decode_copyright(_require(document, "copyright", path)),
        magic_number=decode_magic_number(_require(document, "magic_number", path)),
        major_version=_expect_int(
            _require(document, "major_version", path), "major_version", MAX_UINT32
        ),
        minor_version=_expect_int(
            _require(document, "minor_version", path), "minor_version", MAX_UINT32
        ),
        revision=_expect_int(
            _require(document, "revision", path), "revision", MAX_UINT32
        ),
        instructions=decode_instructions(_require(document, "instructions", path)),
        operand_kinds=decode_operand_kinds(_require(document, "operand_kinds", path)),
    )


def decode_extension(document: dict) -> ExtensionRegistry:
    path = "registry"
    revision = document.get("revision")
    return ExtensionRegistry(
        version=_expect_int(
            _require(document, "version", path), "version", MAX_UINT32
        ),
        revision=(
            None
            if revision is None
            else _expect_int(revision, "revision", MAX_UINT32)
        ),
        copyright=decode_copyright(document.get("copyright", [])),
        instructions=decode_instructions(_require(document, "instructions", path)),
        operand_kinds=decode_operand_kinds(document.get("operand_kinds", [])),
    )


def parse_registry(
    raw: str | bytes, shape: str
) -> CoreRegistry | ExtensionRegistry:
    """Load and structurally decode a registry of the given shape.

    Values are not interpreted beyond their tagged-union shape; hex text is
    only checked later by the normalizer.

    Raises:
        StructuralError: Malformed document or a field with the wrong shape.
        ValueError: shape is not SHAPE_CORE or SHAPE_EXTENSION.
    """
    if shape not in SHAPES:
        raise ValueError(f"Unknown registry shape: {shape}")
    document = load_document(raw)
    if shape == SHAPE_CORE:
        return decode_core(document)
    return decode_extension(document)


# ===--- Alias normalization ---=== #


HEX_PREFIX = "0x"
MAX_BITFLAG = MAX_UINT32
_HEX_DIGITS_RE = re.compile(r"[0-9A-Fa-f]+")


def parse_hex(text: str) -> int:
    if not text.startswith(HEX_PREFIX):
        raise InvalidHexInt(f"Missing '{HEX_PREFIX}' prefix in hex value: {text!r}")
    digits = text[len(HEX_PREFIX):]
    if not _HEX_DIGITS_RE.fullmatch(digits):
        raise InvalidHexInt(f"Not a hexadecimal integer: {text!r}")
    value = int(digits, 16)
    if value > MAX_BITFLAG:
        raise InvalidHexInt(f"Hex value does not fit in 32 bits: {text!r}")
    return value


def enumerant_value(enumerant: Enumerant) -> int:
    if isinstance(enumerant.value, str):
        return parse_hex(enumerant.value)
    return enumerant.value


def dedupe_enumerants(enumerants: list[Enumerant]) -> list[Enumerant]:
    """Collapse aliases so each numeric value keeps one name.

    The shortest name wins; on equal length the first declared one does,
    which keeps the untagged core name over later vendor-suffixed copies.
    Survivors keep their original relative order.

    Raises:
        InvalidHexInt: A Bitflag value is not 0x-prefixed hex.
    """
    values = [enumerant_value(e) for e in enumerants]
    canonical: dict[int, int] = {}
    for index, value in enumerate(values):
        best = canonical.get(value)
        if best is None or len(enumerants[index].name) < len(enumerants[best].name):
            canonical[value] = index
    return [e for index, e in enumerate(enumerants) if canonical[values[index]] == index]


def normalize_registry(registry: CoreRegistry | ExtensionRegistry) -> int:
    """Deduplicate every operand kind's enumerants in place.

    Returns:
        Number of alias enumerants removed. A second run returns 0.
    """
    removed = 0
    for kind in registry.operand_kinds:
        if not kind.enumerants:
            continue
        survivors = dedupe_enumerants(kind.enumerants)
        removed += len(kind.enumerants) - len(survivors)
        kind.enumerants = survivors
    return removed


# ===--- Mojo rendering ---=== #


OPCODE_PREFIX = "Op"
OPCODE_TYPE_NAME = "Opcode"
BIT_FLAG_WIDTH = 32
RESERVED_BIT_FORMAT = "reserved_bit_{}"
WRAPPER_FIELD = "value"

# Python keywords plus Mojo's own; the wrapper field name is reserved too
# since members live in the same struct namespace.
MOJO_RESERVED = frozenset(keyword.kwlist) | {
    "alias",
    "comptime",
    "fn",
    "in",
    "out",
    "ref",
    "self",
    "Self",
    "struct",
    "trait",
    "type",
    "var",
    WRAPPER_FIELD,
}


def mojo_identifier(name: str, raw: str | None = None) -> str:
    if not name:
        source = name if raw is None else raw
        raise StructuralError(f"Name {source!r} renders to an empty identifier")
    if name[:1].isdigit():
        name = "_" + name
    if name in MOJO_RESERVED:
        return name + "_"
    return name


def build_bit_table(enumerants: list[Enumerant]) -> list[Enumerant | None]:
    """Place single-bit enumerants into a 32-slot table by bit position.

    Zero and multi-bit values have no slot and are dropped. When two
    enumerants claim the same bit, the first one keeps it.
    """
    table: list[Enumerant | None] = [None] * BIT_FLAG_WIDTH
    for enumerant in enumerants:
        value = enumerant_value(enumerant)
        if value == 0 or value & (value - 1):
            continue
        position = value.bit_length() - 1
        if table[position] is None:
            table[position] = enumerant
    return table


class Renderer:
    """Writes Mojo declarations for a normalized registry to a sink.

    Every declaration is an open enumeration: a struct wrapping the raw
    integer plus a table of named comptime constants, so values the
    grammar does not list yet still round-trip.
    """

    def __init__(self, sink, id_renderer: IdRenderer):
        self.sink = sink
        self.id_renderer = id_renderer
        self._blocks = 0

    def render_core(self, registry: CoreRegistry) -> None:
        self._render_copyright(registry.copyright)
        self._emit_block(
            [
                f"comptime MAGIC_NUMBER: UInt32 = {registry.magic_number}",
                f"comptime MAJOR_VERSION: UInt32 = {registry.major_version}",
                f"comptime MINOR_VERSION: UInt32 = {registry.minor_version}",
                f"comptime REVISION: UInt32 = {registry.revision}",
            ]
        )
        self._render_opcodes(registry.instructions, strip_prefix=True)
        self._render_operand_kinds(registry.operand_kinds)

    def render_extension(self, registry: ExtensionRegistry) -> None:
        self._render_copyright(registry.copyright)
        metadata = [f"comptime VERSION: UInt32 = {registry.version}"]
        if registry.revision is not None:
            metadata.append(f"comptime REVISION: UInt32 = {registry.revision}")
        self._emit_block(metadata)
        self._render_opcodes(registry.instructions, strip_prefix=False)
        self._render_operand_kinds(registry.operand_kinds)

    def _emit_block(self, lines: list[str]) -> None:
        if self._blocks:
            write_to_sink(self.sink, "\n")
        write_to_sink(self.sink, "\n".join(lines) + "\n")
        self._blocks += 1

    def _member_name(self, raw: str) -> str:
        return mojo_identifier(self.id_renderer.render(CASE_SNAKE, raw), raw)

    def _type_name(self, raw: str) -> str:
        return mojo_identifier(self.id_renderer.render(CASE_TITLE, raw), raw)

    def _render_copyright(self, copyright: list[str]) -> None:
        if not copyright:
            return
        # An entry may itself span lines; each physical line needs a marker.
        lines = [piece for entry in copyright for piece in entry.splitlines() or [""]]
        self._emit_block([f"# {line}" if line else "#" for line in lines])

    def _render_opcodes(
        self, instructions: list[Instruction], strip_prefix: bool
    ) -> None:
        constants = []
        for instr in instructions:
            opname = instr.name
            if strip_prefix:
                if not opname.startswith(OPCODE_PREFIX):
                    raise MissingOpcodePrefix(
                        f"Core instruction {opname!r} lacks the "
                        f"'{OPCODE_PREFIX}' prefix"
                    )
                opname = opname[len(OPCODE_PREFIX):]
                if not opname:
                    raise StructuralError(f"Instruction name {instr.name!r} is empty")
            constants.append((self._member_name(opname), str(instr.opcode)))

        self._emit_block(self._open_enum_lines(OPCODE_TYPE_NAME, "UInt16", constants))

    def _render_operand_kinds(self, operand_kinds: list[OperandKind]) -> None:
        for kind in operand_kinds:
            if kind.category == CATEGORY_VALUE_ENUM:
                self._render_value_enum(kind)
            elif kind.category == CATEGORY_BIT_ENUM:
                self._render_bit_enum(kind)

    def _require_enumerants(self, kind: OperandKind) -> list[Enumerant]:
        if not kind.enumerants:
            raise StructuralError(
                f"{kind.category} operand kind {kind.kind!r} has no enumerants"
            )
        return kind.enumerants

    def _render_value_enum(self, kind: OperandKind) -> None:
        type_name = self._type_name(kind.kind)
        constants = []
        for enumerant in self._require_enumerants(kind):
            if not isinstance(enumerant.value, int):
                raise StructuralError(
                    f"ValueEnum {kind.kind!r} enumerant {enumerant.name!r} "
                    "is not an integer"
                )
            constants.append((self._member_name(enumerant.name), str(enumerant.value)))

        self._emit_block(self._open_enum_lines(type_name, "UInt32", constants))

    def _render_bit_enum(self, kind: OperandKind) -> None:
        type_name = self._type_name(kind.kind)
        table = build_bit_table(self._require_enumerants(kind))
        constants = []
        for position, enumerant in enumerate(table):
            if enumerant is None:
                name = RESERVED_BIT_FORMAT.format(position)
            else:
                name = self._member_name(enumerant.name)
            constants.append((name, f"1 << {position}"))

        lines = self._open_enum_lines(type_name, "UInt32", constants)
        lines.extend(
            [
                "",
                "    @always_inline",
                "    fn __or__(lhs, rhs: Self) -> Self:",
                "        return Self(lhs.value | rhs.value)",
                "",
                "    @always_inline",
                "    fn __and__(lhs, rhs: Self) -> Self:",
                "        return Self(lhs.value & rhs.value)",
                "",
                "    @always_inline",
                "    fn __contains__(self, flag: Self) -> Bool:",
                "        return (self.value & flag.value) == flag.value",
            ]
        )
        self._emit_block(lines)

    def _open_enum_lines(
        self, type_name: str, backing: str, constants: list[tuple[str, str]]
    ) -> list[str]:
        lines = [
            "@fieldwise_init",
            f"struct {type_name}(TrivialRegisterPassable, Intable, EqualityComparable):",
            f"    var {WRAPPER_FIELD}: {backing}",
        ]
        if constants:
            lines.append("")
            for name, value in constants:
                lines.append(f"    comptime {name} = {type_name}({value})")
        lines.extend(
            [
                "",
                "    @always_inline",
                "    fn __int__(self) -> Int:",
                "        return Int(self.value)",
                "",
                "    @always_inline",
                "    fn __eq__(self, other: Self) -> Bool:",
                "        return self.value == other.value",
                "",
                "    @always_inline",
                "    fn __ne__(self, other: Self) -> Bool:",
                "        return self.value != other.value",
            ]
        )
        return lines


def render_core(
    sink, registry: CoreRegistry, tags: tuple[str, ...] = DEFAULT_TAGS
) -> None:
    Renderer(sink, IdRenderer(tags)).render_core(registry)


def render_extension(
    sink, registry: ExtensionRegistry, tags: tuple[str, ...] = DEFAULT_TAGS
) -> None:
    Renderer(sink, IdRenderer(tags)).render_extension(registry)


# ===--- Generator facade ---=== #


@dataclass(frozen=True)
class GenerationStats:
    """Counts collected over one parse -> normalize -> render call.

    Attributes:
        registry_label: Registry version string from registry_version_label.
        instructions: Opcode constants rendered.
        value_enums: ValueEnum operand kinds rendered.
        bit_enums: BitEnum operand kinds rendered.
        skipped_kinds: Operand kinds of any other category (not rendered).
        aliases_removed: Enumerants dropped by alias normalization.
    """

    registry_label: str
    instructions: int
    value_enums: int
    bit_enums: int
    skipped_kinds: int
    aliases_removed: int


def count_operand_kinds(
    registry: CoreRegistry | ExtensionRegistry,
) -> tuple[int, int, int]:
    value_enums = sum(
        1 for k in registry.operand_kinds if k.category == CATEGORY_VALUE_ENUM
    )
    bit_enums = sum(1 for k in registry.operand_kinds if k.category == CATEGORY_BIT_ENUM)
    skipped = len(registry.operand_kinds) - value_enums - bit_enums
    return value_enums, bit_enums, skipped


def generate(
    raw: str | bytes,
    sink,
    shape: str,
    tags: tuple[str, ...] = DEFAULT_TAGS,
) -> GenerationStats:
    """Parse, normalize and render one registry into sink.

    Args:
        raw: Registry document text (JSON or XML).
        sink: Any object with a write(str) method.
        shape: SHAPE_CORE or SHAPE_EXTENSION.
        tags: Vendor tag table for identifier rendering.

    Returns:
        GenerationStats for the call.

    Raises:
        RegistryError: First structural, hex, prefix or sink error met. The
            sink may already hold partial output, which must be discarded.
        ValueError: Unknown shape.
    """
    registry = parse_registry(raw, shape)
    aliases_removed = normalize_registry(registry)

    if shape == SHAPE_CORE:
        render_core(sink, registry, tags)
    else:
        render_extension(sink, registry, tags)

    value_enums, bit_enums, skipped = count_operand_kinds(registry)
    return GenerationStats(
        registry_label=registry_version_label(registry),
        instructions=len(registry.instructions),
        value_enums=value_enums,
        bit_enums=bit_enums,
        skipped_kinds=skipped,
        aliases_removed=aliases_removed,
    )


def generate_core(
    raw: str | bytes, sink, tags: tuple[str, ...] = DEFAULT_TAGS
) -> GenerationStats:
    return generate(raw, sink, SHAPE_CORE, tags)


def generate_extension(
    raw: str | bytes, sink, tags: tuple[str, ...] = DEFAULT_TAGS
) -> GenerationStats:
    return generate(raw, sink, SHAPE_EXTENSION, tags)


# ===--- CLI config contracts ---=== #


@dataclass(frozen=True)
class GenerateConfig:
    shape: str
    grammar: Path
    output: Path | None
    tags: tuple[str, ...]


@dataclass(frozen=True)
class DiscoveryConfig:
    shape: str
    grammar: Path


VALID_ERROR_CODES = {
    "PATH_NOT_FOUND",
    "INVALID_TAG",
    "CONFLICT_GENERATE_DISCOVERY",
}
_TAG_RE = re.compile(r"^[A-Z][A-Z0-9]*$")


class ConfigError(Exception):
    """Command-line problem reported before any grammar is read.

    Attributes:
        code: One of VALID_ERROR_CODES.
        message: What is wrong with the invocation.
        suggestion: Optional hint printed after the message.
    """

    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


def validate_grammar_path(path: Path | None) -> Path:
    if path is None:
        raise ConfigError(
            "PATH_NOT_FOUND",
            "--grammar is required: no grammar file given.",
            "Pass a grammar file, for example --grammar spirv.core.grammar.json.",
        )
    if path.is_file():
        return path
    if path.exists():
        raise ConfigError(
            "PATH_NOT_FOUND",
            f"Grammar path is not a file: {path}",
            "Point --grammar at a *.grammar.json or XML registry file.",
        )
    raise ConfigError(
        "PATH_NOT_FOUND",
        f"Grammar file does not exist: {path}",
        "Core grammars ship as spirv.core.grammar.json and extended instruction "
        "sets as extinst.<name>.grammar.json in SPIRV-Headers.",
    )


def parse_tags(raw: str | None) -> tuple[str, ...]:
    if raw is None:
        return DEFAULT_TAGS
    tags = tuple(t.strip() for t in raw.split(",") if t.strip())
    if not tags:
        raise ConfigError(
            "INVALID_TAG",
            "--tags was given but names no tags.",
            "Pass a comma-separated list, for example --tags KHR,EXT,NV.",
        )
    for tag in tags:
        if not _TAG_RE.match(tag):
            raise ConfigError(
                "INVALID_TAG",
                f"Invalid vendor tag: {tag}",
                "Vendor tags are uppercase letters and digits (for example KHR).",
            )
    return tags


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate Mojo declarations from a SPIR-V grammar"
    )

    parser.add_argument(
        "--grammar", type=Path, default=None, help="grammar file (JSON or XML)"
    )
    parser.add_argument(
        "--extinst",
        action="store_true",
        default=False,
        help="read an extended instruction set grammar instead of the core one",
    )
    parser.add_argument(
        "--output", type=Path, default=None, help="output .mojo file (default: stdout)"
    )
    parser.add_argument(
        "--tags",
        type=str,
        default=None,
        help="comma-separated vendor tags kept whole in names (generation only)",
    )
    parser.add_argument(
        "--list-operand-kinds",
        action="store_true",
        default=False,
        help="list operand kinds and alias counts, then exit",
    )

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def validate_config(args: argparse.Namespace) -> GenerateConfig | DiscoveryConfig:
    shape = SHAPE_EXTENSION if args.extinst else SHAPE_CORE

    if args.list_operand_kinds:
        generate_only = [
            flag
            for flag, value in (("--output", args.output), ("--tags", args.tags))
            if value is not None
        ]
        if generate_only:
            raise ConfigError(
                "CONFLICT_GENERATE_DISCOVERY",
                f"--list-operand-kinds cannot be combined with {generate_only[0]}.",
                "Run discovery and generation as separate commands.",
            )

    grammar = validate_grammar_path(args.grammar)

    if args.list_operand_kinds:
        return DiscoveryConfig(shape=shape, grammar=grammar)

    return GenerateConfig(
        shape=shape,
        grammar=grammar,
        output=args.output,
        tags=parse_tags(args.tags),
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig | DiscoveryConfig:
    return validate_config(parse_args(argv))


# ===--- Discovery ---=== #


@dataclass(frozen=True)
class OperandKindSummary:
    """One row of the --list-operand-kinds table.

    Attributes:
        kind: Operand kind name as written in the grammar.
        category: Grammar category string (ValueEnum, BitEnum, Id, ...).
        enumerant_count: Enumerants before alias normalization.
        alias_count: Enumerants normalization would remove.
    """

    kind: str
    category: str
    enumerant_count: int
    alias_count: int


def registry_version_label(registry: CoreRegistry | ExtensionRegistry) -> str:
    if isinstance(registry, CoreRegistry):
        return (
            f"SPIR-V {registry.major_version}.{registry.minor_version} "
            f"rev {registry.revision}"
        )
    label = f"version {registry.version}"
    if registry.revision is not None:
        label += f" rev {registry.revision}"
    return label


def gather_operand_kind_summaries(
    registry: CoreRegistry | ExtensionRegistry,
) -> list[OperandKindSummary]:
    """Summarize operand kinds of an un-normalized registry, in grammar order."""
    summaries = []
    for kind in registry.operand_kinds:
        enumerants = kind.enumerants or []
        survivors = dedupe_enumerants(enumerants) if enumerants else []
        summaries.append(
            OperandKindSummary(
                kind=kind.kind,
                category=kind.category,
                enumerant_count=len(enumerants),
                alias_count=len(enumerants) - len(survivors),
            )
        )
    return summaries


def format_operand_kinds_table(
    summaries: list[OperandKindSummary], registry_label: str
) -> str:
    """Return the complete --list-operand-kinds output as a string.

    Output format:

        {N} operand kinds in {registry_label}:

          ImageOperands    BitEnum      17 enumerants   3 aliases
          IdRef            Id
          ...

    Enumerant columns are only shown for kinds that have enumerants. The
    alias annotation is omitted when there are none.
    """
    lines = [f"{len(summaries)} operand kinds in {registry_label}:", ""]

    if not summaries:
        lines.append("")
        return "\n".join(lines)

    kind_width = max(len(s.kind) for s in summaries)
    category_width = max(len(s.category) for s in summaries)

    for s in summaries:
        row = f"  {s.kind.ljust(kind_width)}  {s.category.ljust(category_width)}"
        if s.enumerant_count:
            row += f"  {s.enumerant_count:>4} enumerants"
            if s.alias_count:
                row += f"  {s.alias_count} aliases"
        lines.append(row.rstrip())

    lines.append("")
    return "\n".join(lines)


def run_discovery(config: DiscoveryConfig) -> None:
    registry = parse_registry(config.grammar.read_bytes(), config.shape)
    summaries = gather_operand_kind_summaries(registry)
    output = format_operand_kinds_table(summaries, registry_version_label(registry))
    print(output, end="")


# ===--- Output writer ---=== #


@dataclass(frozen=True)
class FileWriteResult:
    """Result of writing the generated source.

    Attributes:
        path: Absolute path of the written file.
        line_count: Number of newline characters in the written content.
        byte_count: Number of bytes written (UTF-8 encoded).
    """

    path: Path
    line_count: int
    byte_count: int


def write_output(path: Path, content: str) -> FileWriteResult:
    """Write generated source to disk, creating parent directories.

    Raises:
        OSError: Propagated directly if the filesystem write fails.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    resolved = path.resolve()
    return FileWriteResult(
        path=resolved,
        line_count=content.count("\n"),
        byte_count=len(resolved.read_bytes()),
    )


# ===--- Summary report ---=== #


@dataclass(frozen=True)
class GenerationSummary:
    """Complete, immutable data for the post-generation console report.

    Attributes:
        heading: First line of the report, names the grammar flavor.
        source_label: Grammar file name plus registry version.
        output_path: Output file path as string.
        stats: Counts from the generator facade.
        written: Write result for the output file.
    """

    heading: str
    source_label: str
    output_path: str
    stats: GenerationStats
    written: FileWriteResult


def build_generation_summary(
    config: GenerateConfig,
    stats: GenerationStats,
    written: FileWriteResult,
) -> GenerationSummary:
    flavor = "core" if config.shape == SHAPE_CORE else "extended instruction set"
    return GenerationSummary(
        heading=f"SPIR-V {flavor} bindings generated:",
        source_label=f"{config.grammar.name} ({stats.registry_label})",
        output_path=str(written.path),
        stats=stats,
        written=written,
    )


def format_generation_summary(summary: GenerationSummary) -> str:
    """Render a GenerationSummary to the multi-section console string.

    Line and byte counts use thousands separators. Returns a string with
    exactly one trailing newline.
    """
    stats = summary.stats
    lines: list[str] = [summary.heading, ""]
    lines.append(f"  Source:     {summary.source_label}")
    lines.append(f"  Output:     {summary.output_path}")
    lines.append("")
    lines.append("  Declarations:")
    lines.append(f"    {'Opcodes:':<18}{stats.instructions:>6}")
    lines.append(f"    {'Value enums:':<18}{stats.value_enums:>6}")
    lines.append(f"    {'Bit enums:':<18}{stats.bit_enums:>6}")
    lines.append(f"    {'Skipped kinds:':<18}{stats.skipped_kinds:>6}")
    lines.append(f"    {'Aliases removed:':<18}{stats.aliases_removed:>6}")
    lines.append("")
    lines.append(
        f"  Written: {summary.written.line_count:,} lines "
        f"({summary.written.byte_count:,} bytes)"
    )
    lines.append("")
    return "\n".join(lines)


def print_generation_summary(summary: GenerationSummary) -> None:
    print(format_generation_summary(summary), end="")


# ===--- Main generation ---=== #


def run_generate(config: GenerateConfig) -> GenerationSummary | None:
    """Run the generator for a GenerateConfig.

    Output is rendered into memory first and only reaches the destination
    once the whole pipeline succeeded, so an error never leaves a partial
    file behind. Without --output the source goes to stdout and no report
    is printed.

    Returns:
        GenerationSummary when writing to a file, None for stdout.

    Raises:
        OSError: Grammar not readable or output write failure.
        RegistryError: Propagated from parse, normalize or render.
    """
    raw = config.grammar.read_bytes()
    buffer = io.StringIO()

    if config.output is None:
        generate(raw, buffer, config.shape, config.tags)
        sys.stdout.write(buffer.getvalue())
        return None

    print(f"Parsing: {config.grammar}")
    stats = generate(raw, buffer, config.shape, config.tags)
    written = write_output(config.output, buffer.getvalue())

    summary = build_generation_summary(config, stats, written)
    print_generation_summary(summary)
    return summary


def main():
    try:
        config = build_config()
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err

    try:
        if isinstance(config, DiscoveryConfig):
            run_discovery(config)
        else:
            run_generate(config)
    except RegistryError as err:
        print(f"Registry error [{err.code}]: {err.message}")
        raise SystemExit(1) from err
    except OSError as err:
        print(f"Error: {err}")
        raise SystemExit(1) from err


if __name__ == "__main__":
    main()
