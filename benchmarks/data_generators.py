"""
Test data generators for JSON mapping benchmarks.

Creates both sides of a mapping workload:
- Typed object graphs (orders with customers and line items)
- JSON documents of different shapes for dynamic reads
- Plain dict/list equivalents so baselines serialize the same data
"""

import json
import random
import string
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Any

_ESCAPE_PROBABILITY = 0.3


class OrderStatus(Enum):
    PENDING = 1
    SHIPPED = 2
    DELIVERED = 3


@dataclass
class Customer:
    customer_id: int = 0
    name: str = ""
    email: str = ""
    vip: bool = False


@dataclass
class LineItem:
    sku: str = ""
    quantity: int = 0
    unit_price: float = 0.0


@dataclass
class Order:
    order_id: int = 0
    customer: Customer = field(default_factory=Customer)
    items: list[LineItem] = field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING
    note: str | None = None


def generate_orders(count: int, seed: int = 1234) -> list[Order]:
    """Generates a reproducible list of orders with 1-8 line items each."""
    rng = random.Random(seed)
    return [
        Order(
            order_id=100000 + i,
            customer=Customer(
                customer_id=rng.randint(1, 99999),
                name=_random_string(rng, 12),
                email=f"{_random_string(rng, 8)}@example.com",
                vip=rng.random() < 0.1,
            ),
            items=[
                LineItem(
                    sku=f"SKU-{rng.randint(1000, 9999)}",
                    quantity=rng.randint(1, 20),
                    unit_price=round(rng.uniform(0.5, 500.0), 2),
                )
                for _ in range(rng.randint(1, 8))
            ],
            status=rng.choice(list(OrderStatus)),
            note=None if rng.random() < 0.7 else _random_string(rng, 30),
        )
        for i in range(count)
    ]


def orders_as_plain(orders: list[Order]) -> list[dict[str, Any]]:
    """Converts orders to the dicts a baseline library can serialize."""
    plain = []
    for order in orders:
        data = asdict(order)
        data["status"] = order.status.value
        plain.append(data)
    return plain


def generate_test_data(data_type: str) -> str:
    """Generates a JSON document of the specified shape."""
    generators = {
        "small_orders": lambda: _dump_orders(10),
        "large_orders": lambda: _dump_orders(500),
        "mixed_array": _generate_mixed_array,
        "nested_structure": _generate_nested_structure,
        "string_heavy": _generate_string_heavy,
    }

    if data_type not in generators:
        raise ValueError(f"Unknown data type: {data_type}")

    return generators[data_type]()


def _dump_orders(count: int) -> str:
    return json.dumps(orders_as_plain(generate_orders(count)))


def _generate_mixed_array() -> str:
    """Generates an array mixing every scalar kind with small objects."""
    rng = random.Random(42)
    array: list[Any] = []

    for i in range(200):
        choice = rng.randint(1, 6)
        if choice == 1:
            array.append(rng.randint(-1000, 1000))
        elif choice == 2:
            array.append(round(rng.uniform(-100.0, 100.0), 3))
        elif choice == 3:
            array.append(_random_string(rng, rng.randint(5, 30)))
        elif choice == 4:
            array.append(rng.choice([True, False]))
        elif choice == 5:
            array.append(None)
        else:
            array.append(
                {
                    "index": i,
                    "value": _random_string(rng, 10),
                    "score": round(rng.uniform(0, 100), 2),
                }
            )

    return json.dumps(array)


def _generate_nested_structure() -> str:
    """Generates a nested structure well inside the default depth bound."""
    rng = random.Random(7)

    def create_nested_dict(depth: int) -> dict[str, Any]:
        if depth <= 0:
            return {"value": _random_string(rng, 10)}

        return {
            "level": depth,
            "data": _random_string(rng, 15),
            "items": [create_nested_dict(depth - 1) for _ in range(3)],
            "nested": create_nested_dict(depth - 1),
        }

    return json.dumps(create_nested_dict(6))


def _generate_string_heavy() -> str:
    """Generates strings full of escape sequences and non-ASCII text."""
    rng = random.Random(99)

    def create_escaped_string() -> str:
        chars = []
        for _ in range(50):
            if rng.random() < _ESCAPE_PROBABILITY:
                chars.append(rng.choice(['"', "\\", "/", "\b", "\f", "\n", "é", "✓"]))
            else:
                chars.append(rng.choice(string.ascii_letters + string.digits + " "))
        return "".join(chars)

    data = {
        "strings": [create_escaped_string() for _ in range(100)],
        "labels": {f"key_{i}": create_escaped_string() for i in range(20)},
    }
    return json.dumps(data)


def _random_string(rng: random.Random, length: int) -> str:
    return "".join(rng.choices(string.ascii_letters, k=length))
