from app.inference.builder import (
    build_fields,
    canonical_json,
    has_drift,
    structural_signature,
)
from app.inference.collector import FieldStat, StatCollector
from app.inference.models import FieldSchema


def test_build_fields_from_three_documents():
    stats = StatCollector().profile([{"a": 1}, {"a": "x"}, {"a": 1, "b": True}])
    fields = build_fields(stats, total_samples=3)

    assert fields == {
        "a": FieldSchema(present=3, optional=False, types=["integer", "string"]),
        "b": FieldSchema(present=1, optional=True, types=["boolean"]),
    }


def test_build_fields_sorted_by_path():
    stats = {
        "z": FieldStat("z", 1, {"string"}),
        "a": FieldStat("a", 1, {"string"}),
        "m.k": FieldStat("m.k", 1, {"string"}),
    }
    assert list(build_fields(stats, 1)) == ["a", "m.k", "z"]


def test_type_order_does_not_matter():
    """Unterschiedliche Reihenfolge der Typ-Tags darf keine Drift erzeugen."""
    one = {"a": {"present": 2, "optional": False, "types": ["string", "integer"]}}
    two = {"a": FieldSchema(present=2, optional=False, types=["integer", "string"])}

    assert canonical_json(one) == canonical_json(two)
    assert not has_drift(one, two)


def test_canonical_json_is_byte_stable():
    stats = StatCollector().profile([{"b": 1, "a": {"c": [1, "x"]}}])
    fields = build_fields(stats, 1)

    assert canonical_json(fields) == canonical_json(dict(reversed(list(fields.items()))))
    assert canonical_json(fields).startswith('{"a":{"optional":false,"present":1')


def test_present_changes_are_not_drift():
    latest = {"a": FieldSchema(present=30, optional=True, types=["string"])}
    candidate = {"a": FieldSchema(present=12, optional=True, types=["string"])}

    assert structural_signature(latest) == structural_signature(candidate)
    assert canonical_json(latest) != canonical_json(candidate)
    assert not has_drift(latest, candidate)


def test_drift_on_new_path_type_or_optional_flag():
    base = {"a": FieldSchema(present=3, optional=False, types=["integer"])}

    assert has_drift(base, {**base, "b": FieldSchema(present=1, optional=True, types=["string"])})
    assert has_drift(base, {"a": FieldSchema(present=3, optional=False, types=["integer", "null"])})
    assert has_drift(base, {"a": FieldSchema(present=2, optional=True, types=["integer"])})
    assert has_drift(base, {})


def test_no_predecessor_is_always_drift():
    assert has_drift(None, {})
