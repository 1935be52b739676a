import json
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import spirv_gen  # noqa: E402


@pytest.fixture
def make_core_document() -> Callable[..., dict]:
    def _make_core_document(**overrides: object) -> dict:
        document: dict[str, object] = {
            "copyright": ["Copyright (c) 2014-2024 The Khronos Group Inc.", ""],
            "magic_number": "0x07230203",
            "major_version": 1,
            "minor_version": 6,
            "revision": 1,
            "instruction_printing_class": [{"tag": "Miscellaneous"}],
            "instructions": [
                {"opname": "OpNop", "class": "Miscellaneous", "opcode": 0},
                {"opname": "OpUndef", "opcode": 1, "operands": []},
            ],
            "operand_kinds": [
                {
                    "category": "BitEnum",
                    "kind": "MemoryAccess",
                    "enumerants": [
                        {"enumerant": "None", "value": "0x0000"},
                        {"enumerant": "Volatile", "value": "0x0001"},
                        {"enumerant": "Aligned", "value": "0x0002"},
                    ],
                },
                {
                    "category": "ValueEnum",
                    "kind": "SourceLanguage",
                    "enumerants": [
                        {"enumerant": "Unknown", "value": 0},
                        {"enumerant": "ESSL", "value": 1},
                    ],
                },
                {"category": "Id", "kind": "IdRef", "doc": "Reference to an <id>"},
            ],
        }
        document.update(overrides)
        return document

    return _make_core_document


@pytest.fixture
def make_extension_document() -> Callable[..., dict]:
    def _make_extension_document(**overrides: object) -> dict:
        document: dict[str, object] = {
            "copyright": ["Copyright (c) 2014-2016 The Khronos Group Inc."],
            "version": 100,
            "revision": 2,
            "instructions": [
                {"opname": "Round", "opcode": 1},
                {"opname": "RoundEven", "opcode": 2},
            ],
        }
        document.update(overrides)
        return document

    return _make_extension_document


@pytest.fixture
def to_json() -> Callable[[dict], str]:
    def _to_json(document: dict) -> str:
        return json.dumps(document, indent=2)

    return _to_json


@pytest.fixture
def make_enumerant() -> Callable[[str, int | str], spirv_gen.Enumerant]:
    def _make_enumerant(name: str, value: int | str) -> spirv_gen.Enumerant:
        return spirv_gen.Enumerant(name=name, value=value)

    return _make_enumerant
