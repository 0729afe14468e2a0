import copy

import pytest

from fieldveil.config import FilterOptions
from fieldveil.errors import MissingSchemaError
from fieldveil.filtering.fields import FieldFilter
from fieldveil.filtering.models import AccessHandle, FilteredModel
from fieldveil.observability.metrics import MetricsRegistry
from fieldveil.schema.declaration import parse_schema


class ListStore:
    def __init__(self, documents):
        self.documents = documents
        self.calls = []

    def _matching(self, conditions):
        return [doc for doc in self.documents if all(doc.get(k) == v for k, v in conditions.items())]

    def find(self, conditions, projection=None):
        self.calls.append(("find", dict(conditions)))
        return [copy.deepcopy(doc) for doc in self._matching(conditions)]

    def find_one(self, conditions, projection=None):
        self.calls.append(("find_one", dict(conditions)))
        found = self._matching(conditions)
        return copy.deepcopy(found[0]) if found else None


@pytest.fixture()
def user_model(registry, user_schema, user_document):
    field_filter = FieldFilter(user_schema, registry, metrics=MetricsRegistry())
    return FilteredModel("user", ListStore([user_document]), field_filter)


def test_unbound_queries_return_raw_documents(user_model, user_document):
    assert user_model.find() == [user_document]
    assert user_model.find_one({}) == user_document
    assert user_model.field_filter.metrics.get("queries_unfiltered") == 2


def test_filter_flag_gives_public_view(user_model):
    resp = user_model.find_one({}, filter=True)
    assert resp["name"] == "some name"
    assert "password" not in resp
    assert "phone" not in resp
    assert "document" not in resp
    assert resp["address"] == {"number": 123}
    assert resp["mainCard"] == {"month": 10, "year": 2019}
    [listed] = user_model.find({}, filter=True)
    assert listed == resp
    assert user_model.field_filter.metrics.get("queries_filtered") == 2


def test_empty_results_are_returned_untouched(user_model):
    assert user_model.find({"name": "123"}, filter=True) == []
    assert user_model.find_one({"name": "123"}, filter=True) is None
    assert user_model.by_access("admin").find({"name": "123"}) == []


def test_bound_handle_filters_every_query(user_model, user_document):
    handle = user_model.by_access(["support", "admin"])
    [resp] = handle.find({})
    assert "password" not in resp
    assert resp["phone"] == user_document["phone"]
    assert resp["document"] == user_document["document"]
    assert resp["address"]["code"] == user_document["address"]["code"]
    assert "number" not in resp["mainCard"]
    assert "display" in resp["mainCard"]
    assert "display" in resp["cards"][0]["card"]
    assert handle.find_one({"name": "some name"}) == resp


def test_handles_are_cached_per_role_set(user_model):
    handle = user_model.by_access(["support", "admin"])
    assert isinstance(handle, AccessHandle)
    assert user_model.by_access(["admin", "support"]) is handle
    assert user_model.by_access("admin") is user_model.by_access(["admin"])
    assert set(handle.get_access()) == {"admin", "support"}
    assert handle.has_access_context
    assert not user_model.has_access_context
    assert handle.name == "user"


def test_configured_accessor_names(registry, user_schema, user_document):
    options = FilterOptions(accessorMethod="byAccess", accessIdGetter="getAccess")
    model = FilteredModel("user", ListStore([user_document]), FieldFilter(user_schema, registry, options))
    handle = model.byAccess("admin")
    assert handle is model.by_access("admin")
    assert handle.getAccess() == ("admin",)
    with pytest.raises(AttributeError):
        model.unknownMethod
    with pytest.raises(AttributeError):
        handle.unknownMethod


def test_discriminator_handles_are_built_eagerly():
    person = parse_schema({"name": "person", "fields": {"name": "String", "kind": "String"}})
    employee = parse_schema({
        "name": "employee",
        "fields": {"name": "String", "kind": "String", "salary": {"type": "Number", "access": ["hr"]}},
    })
    rows = [{"name": "Ann", "kind": "employee", "salary": 10}]
    employee_model = FilteredModel("employee", ListStore(rows), FieldFilter(employee))
    base = FilteredModel("person", ListStore(rows), FieldFilter(person), discriminators={"employee": employee_model})

    handle = base.by_access("hr")
    assert handle.discriminators["employee"] is employee_model.by_access("hr")
    assert handle.find() == [{"name": "Ann", "kind": "employee"}]
    assert handle.discriminators["employee"].find() == rows
    assert base.by_access("guest").discriminators["employee"].find() == [{"name": "Ann", "kind": "employee"}]


def test_schema_errors_abort_before_the_store_is_queried():
    schema = parse_schema({"name": "orphan", "fields": {"ghost": {"type": "ObjectId", "ref": "ghost"}}})
    store = ListStore([{"ghost": "1"}])
    model = FilteredModel("orphan", store, FieldFilter(schema))
    with pytest.raises(MissingSchemaError):
        model.find(filter=True)
    with pytest.raises(MissingSchemaError):
        model.by_access("admin").find_one({})
    assert store.calls == []


def test_handles_for_roles_containing_separator_are_distinct(user_model):
    assert user_model.by_access(["a:b"]) is not user_model.by_access(["a", "b"])
    assert user_model.by_access(["a:b"]).get_access() == ("a:b",)
