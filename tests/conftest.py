"""Shared fixtures for armgen tests."""

import copy
import importlib
import json
from pathlib import Path
import sys
from typing import Any

import pytest

from armgen.core.ir import SchemaIR
from armgen.core.schema_parser import SchemaParser
from armgen.generators import generate_all

WIDGETS_TYPE = "Provider.Example/widgets"


def widgets_schema() -> dict[str, Any]:
    """Single resource with one required, pattern-constrained string."""
    return {
        "id": "https://schema.management.azure.com/schemas/2024-01-01/Provider.Example.json#",
        "$schema": "http://json-schema.org/draft-04/schema#",
        "title": "Provider.Example",
        "description": "Provider Example Resource Types",
        "resourceDefinitions": {
            "widgets": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "pattern": "^[a-z]+$"},
                    "type": {"type": "string", "enum": [WIDGETS_TYPE]},
                    "apiVersion": {"type": "string", "enum": ["2024-01-01"]},
                },
                "required": ["name", "type", "apiVersion"],
                "description": WIDGETS_TYPE,
            }
        },
        "definitions": {},
    }


def catalog_schema() -> dict[str, Any]:
    """Richer document: definitions, enums, unions, dictionaries and recursion."""
    return {
        "id": "https://schema.management.azure.com/schemas/2024-01-01/Provider.Catalog.json#",
        "title": "Provider.Catalog",
        "resourceDefinitions": {
            "widgets": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "pattern": "^[a-z]+$", "maxLength": 10},
                    "type": {"type": "string", "enum": ["Provider.Catalog/widgets"]},
                    "apiVersion": {"type": "string", "enum": ["2024-01-01"]},
                    "location": {"type": "string", "description": "Azure region"},
                    "sku": {"$ref": "#/definitions/sku"},
                    "tags": {"$ref": "#/definitions/tags"},
                    "kind": {"type": "string", "enum": ["a-b", "c"]},
                    "mode": {
                        "oneOf": [
                            {"type": "string"},
                            {"type": "string", "enum": ["A", "B"]},
                        ]
                    },
                    "tree": {"$ref": "#/definitions/node"},
                    "provisioningState": {"type": "string", "readOnly": True},
                    "legacy": {"type": "boolean", "deprecated": True},
                },
                "required": ["name", "type", "apiVersion"],
            },
        },
        "definitions": {
            "sku": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "enum": ["Basic", "Standard"]},
                    "capacity": {"type": "integer", "minimum": 1, "maximum": 10},
                },
                "required": ["name"],
                "additionalProperties": False,
            },
            "tags": {"type": "object", "additionalProperties": {"type": "string"}},
            "node": {
                "type": "object",
                "properties": {
                    "label": {"type": "string"},
                    "children": {"type": "array", "items": {"$ref": "#/definitions/node"}},
                },
                "required": ["label"],
            },
        },
    }


@pytest.fixture
def widgets_document() -> dict[str, Any]:
    return widgets_schema()


@pytest.fixture
def catalog_document() -> dict[str, Any]:
    return catalog_schema()


@pytest.fixture
def parse():
    """Parse a raw document with default options."""

    def _parse(document: Any) -> SchemaIR:
        return SchemaParser().parse(copy.deepcopy(document))

    return _parse


@pytest.fixture
def write_schema():
    """Write a schema document (dict or raw text) below a root directory."""

    def _write(root: Path, name: str, document: Any) -> Path:
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(document, str):
            path.write_text(document, encoding="utf-8")
        else:
            path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        return path

    return _write


def _purge(package: str) -> None:
    for name in list(sys.modules):
        if name == package or name.startswith(f"{package}."):
            del sys.modules[name]


@pytest.fixture
def load_generated(tmp_path):
    """Generate a document into a temporary directory and import its package."""
    roots: list[tuple[str, str]] = []

    def _load(document: Any):
        ir = SchemaParser().parse(copy.deepcopy(document))
        files = generate_all(ir)
        root = tmp_path / f"generated_{len(roots)}"
        for generated in files:
            target = root / generated.path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(generated.data)

        package = files[0].path.split("/", 1)[0]
        _purge(package)
        sys.path.insert(0, str(root))
        roots.append((str(root), package))
        importlib.invalidate_caches()
        return importlib.import_module(package)

    yield _load

    for root, package in roots:
        if root in sys.path:
            sys.path.remove(root)
        _purge(package)
