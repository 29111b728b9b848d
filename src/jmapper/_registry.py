"""
Converter registry.

Importers turn a JSON scalar into a target type and are keyed by
``(type of the scalar, target type)``; exporters write a value through a
JsonWriter and are keyed by the value's exact runtime type. Both come in
two tiers: built-in defaults and user registrations, the latter always
consulted first.
"""

import logging
from collections.abc import Callable
from datetime import date
from datetime import datetime
from datetime import time
from decimal import Decimal
from typing import Any
from typing import TypeAlias
from uuid import UUID

from ._writer import JsonWriter

logger = logging.getLogger(__name__)

Exporter: TypeAlias = Callable[[Any, JsonWriter], None]
Importer: TypeAlias = Callable[[Any], Any]
ImporterTable: TypeAlias = dict[type, dict[Any, Importer]]


def _add_importer(
    table: ImporterTable, json_type: type, value_type: Any, importer: Importer
) -> None:
    table.setdefault(json_type, {})[value_type] = importer


def _export_isoformat(obj: date | time, writer: JsonWriter) -> None:
    writer.write_string(obj.isoformat())


def _export_decimal(obj: Decimal, writer: JsonWriter) -> None:
    writer.write_decimal(obj)


def _export_uuid(obj: UUID, writer: JsonWriter) -> None:
    writer.write_string(str(obj))


def _float_to_decimal(value: float) -> Decimal:
    # repr keeps the shortest round-tripping digits, not the binary expansion
    return Decimal(repr(value))


class ConverterRegistry:
    """
    Two-tier tables of importers and exporters.

    The user tables are plain dicts read without locking; registering
    converters while another thread is mapping is the caller's concern.
    """

    def __init__(self) -> None:
        self._base_exporters: dict[type, Exporter] = {}
        self._custom_exporters: dict[type, Exporter] = {}
        self._base_importers: ImporterTable = {}
        self._custom_importers: ImporterTable = {}

        self._register_base_exporters()
        self._register_base_importers()

    def _register_base_exporters(self) -> None:
        self._base_exporters[datetime] = _export_isoformat
        self._base_exporters[date] = _export_isoformat
        self._base_exporters[time] = _export_isoformat
        self._base_exporters[Decimal] = _export_decimal
        self._base_exporters[UUID] = _export_uuid

    def _register_base_importers(self) -> None:
        table = self._base_importers
        _add_importer(table, int, float, float)
        _add_importer(table, int, Decimal, Decimal)
        _add_importer(table, float, Decimal, _float_to_decimal)
        _add_importer(table, str, Decimal, Decimal)
        _add_importer(table, str, datetime, datetime.fromisoformat)
        _add_importer(table, str, date, date.fromisoformat)
        _add_importer(table, str, time, time.fromisoformat)
        _add_importer(table, str, UUID, UUID)

    def register_exporter(self, value_type: type, exporter: Exporter) -> None:
        """Registers how values of exactly ``value_type`` are written."""
        self._custom_exporters[value_type] = exporter
        logger.debug(f"Registered exporter for {value_type!r}")

    def register_importer(
        self, json_type: type, value_type: Any, importer: Importer
    ) -> None:
        """Registers how a ``json_type`` scalar (int, float, str, bool) becomes ``value_type``."""
        _add_importer(self._custom_importers, json_type, value_type, importer)
        logger.debug(f"Registered importer {json_type!r} -> {value_type!r}")

    def unregister_exporters(self) -> None:
        self._custom_exporters.clear()
        logger.debug("Cleared user exporters")

    def unregister_importers(self) -> None:
        self._custom_importers.clear()
        logger.debug("Cleared user importers")

    def find_exporter(self, value_type: type) -> Exporter | None:
        exporter = self._custom_exporters.get(value_type)
        if exporter is None:
            exporter = self._base_exporters.get(value_type)
        return exporter

    def find_importer(self, json_type: type, value_type: Any) -> Importer | None:
        for table in (self._custom_importers, self._base_importers):
            importers = table.get(json_type)
            if importers is not None and value_type in importers:
                return importers[value_type]
        return None
