"""
Converter registry tests.

Validates built-in importers and exporters, precedence of user
registrations, and clearing of the user tier.
"""

from datetime import date
from datetime import datetime
from datetime import time
from decimal import Decimal
from uuid import UUID

import pytest

from jmapper import ConverterRegistry
from jmapper import JsonMapper
from jmapper import JsonWriter
from jmapper import UnconvertibleValueError


class Money:
    cents: int

    def __init__(self, cents: int) -> None:
        self.cents = cents


def _money_from_text(text: str) -> Money:
    whole, _, fraction = text.partition(".")
    return Money(int(whole) * 100 + int(fraction or 0))


def _export_money(money: Money, writer: JsonWriter) -> None:
    writer.write_string(f"{money.cents // 100}.{money.cents % 100:02d}")


def test_base_importers() -> None:
    """
    Validates the built-in scalar bridges are present.
    """
    registry = ConverterRegistry()

    assert registry.find_importer(int, float) is float
    assert registry.find_importer(int, Decimal) is Decimal
    assert registry.find_importer(float, Decimal)(0.1) == Decimal("0.1")
    assert registry.find_importer(str, UUID) is UUID
    assert registry.find_importer(str, int) is None
    assert registry.find_importer(bool, int) is None


def test_base_exporters() -> None:
    """
    Validates built-in exporters are matched by exact type only.
    """
    registry = ConverterRegistry()

    assert registry.find_exporter(datetime) is not None
    assert registry.find_exporter(Decimal) is not None
    assert registry.find_exporter(bool) is None
    assert registry.find_exporter(Money) is None


def test_user_importer_takes_precedence() -> None:
    """
    Validates a user importer shadows the built-in one for the same pair.
    """
    registry = ConverterRegistry()

    def parse_us_date(text: str) -> date:
        month, day, year = text.split("/")
        return date(int(year), int(month), int(day))

    registry.register_importer(str, date, parse_us_date)
    assert registry.find_importer(str, date) is parse_us_date

    registry.unregister_importers()
    assert registry.find_importer(str, date) == date.fromisoformat


def test_user_exporter_registration() -> None:
    """
    Validates user exporters are found and cleared as a tier.
    """
    registry = ConverterRegistry()
    registry.register_exporter(Money, _export_money)

    assert registry.find_exporter(Money) is _export_money

    registry.unregister_exporters()
    assert registry.find_exporter(Money) is None
    assert registry.find_exporter(date) is not None


def test_registries_are_independent() -> None:
    """
    Validates registrations on one mapper are invisible to another.
    """
    first = JsonMapper()
    second = JsonMapper()
    first.register_importer(str, Money, _money_from_text)

    assert first.to_object('"3.25"', Money).cents == 325
    with pytest.raises(UnconvertibleValueError):
        second.to_object('"3.25"', Money)


@pytest.mark.parametrize(
    "json,target,expected",
    [
        ("3", float, 3.0),
        ("3", Decimal, Decimal(3)),
        ("0.1", Decimal, Decimal("0.1")),
        ('"1.50"', Decimal, Decimal("1.50")),
        ('"2024-01-02"', date, date(2024, 1, 2)),
        ('"2024-01-02T03:04:05"', datetime, datetime(2024, 1, 2, 3, 4, 5)),
        ('"12:30:00"', time, time(12, 30)),
        (
            '"12345678-1234-5678-1234-567812345678"',
            UUID,
            UUID("12345678-1234-5678-1234-567812345678"),
        ),
    ],
)
def test_builtin_imports_through_mapper(
    mapper: JsonMapper, json: str, target: type, expected: object
) -> None:
    """
    Validates scalars reach non-JSON types through the built-in importers.
    """
    result = mapper.to_object(json, target)

    assert result == expected
    assert type(result) is target


def test_failing_importer_reports_value(mapper: JsonMapper) -> None:
    """
    Validates an importer rejecting its input surfaces as UnconvertibleValueError.
    """
    with pytest.raises(UnconvertibleValueError, match="'not a date'") as exc_info:
        mapper.to_object('"not a date"', date)

    assert isinstance(exc_info.value.__cause__, ValueError)


@pytest.mark.parametrize(
    "value,expected",
    [
        (datetime(2024, 1, 2, 3, 4, 5), '"2024-01-02T03:04:05"'),
        (date(2024, 1, 2), '"2024-01-02"'),
        (time(12, 30), '"12:30:00"'),
        (Decimal("1.50"), "1.50"),
        (
            UUID("12345678-1234-5678-1234-567812345678"),
            '"12345678-1234-5678-1234-567812345678"',
        ),
    ],
)
def test_builtin_exports_through_mapper(
    mapper: JsonMapper, value: object, expected: str
) -> None:
    """
    Validates non-JSON scalars are written by the built-in exporters.
    """
    assert mapper.to_json(value) == expected


def test_user_converters_through_mapper(mapper: JsonMapper) -> None:
    """
    Validates user converters drive both directions of a custom type.
    """
    mapper.register_exporter(Money, _export_money)
    mapper.register_importer(str, Money, _money_from_text)

    assert mapper.to_json([Money(1205)]) == '["12.05"]'
    assert mapper.to_object('"12.05"', Money).cents == 1205

    mapper.unregister_exporters()
    assert mapper.to_json(Money(5)) == '{"cents":5}'
