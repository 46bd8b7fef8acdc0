import pytest

from app.inference.collector import ROOT_PATH, StatCollector


def _summary(stats):
    return {
        path: (stat.occurrence_count, sorted(stat.observed_types))
        for path, stat in stats.items()
    }


def test_three_documents_mixed_types():
    stats = StatCollector().profile([{"a": 1}, {"a": "x"}, {"a": 1, "b": True}])

    assert _summary(stats) == {
        "a": (3, ["integer", "string"]),
        "b": (1, ["boolean"]),
    }


def test_nested_objects_use_dotted_paths():
    stats = StatCollector().profile([
        {"user": {"name": "Ada", "address": {"city": "London"}}},
    ])

    assert _summary(stats) == {
        "user": (1, ["object"]),
        "user.name": (1, ["string"]),
        "user.address": (1, ["object"]),
        "user.address.city": (1, ["string"]),
    }


def test_array_elements_capped_at_three():
    items = [{"x": 1}, {"x": 2}, {"x": 3}, {"x": "vier"}]
    stats = StatCollector().profile([{"items": items}])

    assert _summary(stats) == {
        "items": (1, ["array"]),
        "items[].x": (1, ["integer"]),
    }


def test_array_sample_limit_is_configurable():
    items = [{"x": 1}, {"x": 2}, {"x": 3}, {"x": "vier"}]
    stats = StatCollector(array_sample_limit=4).profile([{"items": items}])

    assert sorted(stats["items[].x"].observed_types) == ["integer", "string"]


def test_path_counted_once_per_document():
    doc = {"tags": [{"name": "a"}, {"name": "b"}, {"name": 3}]}
    stats = StatCollector().profile([doc, doc])

    stat = stats["tags[].name"]
    assert stat.occurrence_count == 2
    assert stat.observed_types == {"string", "integer"}


def test_scalar_array_elements_and_nested_arrays():
    stats = StatCollector().profile([{"ids": [1, 2, None], "grid": [[1, 2], [3]]}])

    assert _summary(stats) == {
        "ids": (1, ["array"]),
        "ids[]": (1, ["integer", "null"]),
        "grid": (1, ["array"]),
        "grid[]": (1, ["array"]),
        "grid[][]": (1, ["integer"]),
    }


def test_empty_array_records_only_the_field():
    stats = StatCollector().profile([{"items": []}])

    assert _summary(stats) == {"items": (1, ["array"])}


def test_null_field_is_recorded():
    stats = StatCollector().profile([{"a": None}])

    assert _summary(stats) == {"a": (1, ["null"])}


def test_top_level_values_use_root_path():
    stats = StatCollector().profile([None, 5, "x"])

    assert _summary(stats) == {ROOT_PATH: (3, ["integer", "null", "string"])}


def test_top_level_array():
    stats = StatCollector().profile([[{"k": 1}, {"k": 2}]])

    assert _summary(stats) == {
        ROOT_PATH: (1, ["array"]),
        f"{ROOT_PATH}[].k": (1, ["integer"]),
    }


def test_empty_object_contributes_nothing():
    assert StatCollector().profile([{}]) == {}


def test_collect_updates_existing_stats():
    collector = StatCollector()
    stats = {}
    collector.collect({"a": 1}, stats)
    collector.collect({"a": 2.5}, stats)

    assert stats["a"].occurrence_count == 2
    assert stats["a"].observed_types == {"integer", "number"}


def test_invalid_array_sample_limit():
    with pytest.raises(ValueError):
        StatCollector(array_sample_limit=0)
