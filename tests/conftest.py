import pytest

from fieldveil.schema.declaration import parse_schema
from fieldveil.schema.registry import SchemaRegistry


def card_declaration():
    return {
        "name": "card",
        "fields": {
            "number": {"type": "String", "private": True},
            "month": "Number",
            "year": "Number",
        },
        "virtuals": {"display": {"access": ["admin"]}},
    }


def user_declaration():
    return {
        "name": "user",
        "fields": {
            "name": "String",
            "password": {"type": "String", "private": True},
            "phone": {"type": "String", "access": ["admin", "support"], "permissions": ["admin"]},
            "document": {"type": "String", "access": ["admin"]},
            "address": {
                "number": "Number",
                "code": {"type": "String", "access": ["admin"]},
            },
            "cards": [{"title": "String", "card": {"type": "ObjectId", "ref": "card"}}],
            "mainCard": {"type": "ObjectId", "ref": "card"},
        },
    }


@pytest.fixture()
def registry():
    return SchemaRegistry(schemas=[parse_schema(card_declaration()), parse_schema(user_declaration())])


@pytest.fixture()
def user_schema(registry):
    return registry.get("user")


@pytest.fixture()
def user_document():
    card = {"number": "4111-1111-1111-1111", "month": 10, "year": 2019, "display": "4111-XXXX-XXXX-XXXX"}
    return {
        "name": "some name",
        "password": "123456",
        "address": {"number": 123, "code": "14940-000"},
        "cards": [{"title": "default", "card": dict(card)}],
        "phone": "(11) 2345-1235",
        "document": "123456789",
        "mainCard": dict(card),
    }
