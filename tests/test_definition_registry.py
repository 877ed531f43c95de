import pickle
import threading

import polars as pl
import pytest

import game.definitions.registry as registry_module
from game.definitions.npc import DEFAULT_DEFINITION, NpcDefinition
from game.definitions.registry import (
    DefinitionNotFoundError,
    NpcDefinitionRegistry,
    RegistryInitializationError,
)

GOBLIN = NpcDefinition(
    id=3,
    name="Goblin",
    examine="A smelly creature.",
    size=1,
    walk_animation=1,
    walk_back_animation=2,
    walk_left_animation=3,
    walk_right_animation=4,
    actions=["Talk-to", "Attack"],
)


def goblin_loader(slots):
    slots[3] = GOBLIN


@pytest.fixture
def registry():
    return NpcDefinitionRegistry.build(goblin_loader, capacity=10)


@pytest.fixture
def fresh_global_registry(monkeypatch):
    """Run a test against an uninitialized process-wide registry."""
    monkeypatch.setattr(registry_module, "_registry", None)


def test_goblin_scenario(registry):
    goblin = registry.get(3)
    assert goblin.name == "Goblin"
    assert goblin.has_action("Attack")
    assert not goblin.has_action("Trade")
    with pytest.raises(DefinitionNotFoundError):
        registry.get(5)
    with pytest.raises(DefinitionNotFoundError):
        registry.get(10)

    everything = list(registry.all())
    assert len(everything) == 10
    assert sum(1 for d in everything if d is DEFAULT_DEFINITION) == 9


def test_get_returns_stored_instance(registry):
    assert registry.get(3) is GOBLIN
    # Repeated lookups never drift
    assert registry.get(3) is registry.get(3)


@pytest.mark.parametrize("bad_id", [-1, -7, 10, 11, 10_000])
def test_get_out_of_range_is_not_found(registry, bad_id):
    with pytest.raises(DefinitionNotFoundError) as excinfo:
        registry.get(bad_id)
    assert excinfo.value.definition_id == bad_id


def test_not_found_is_a_lookup_error(registry):
    with pytest.raises(LookupError):
        registry.get(0)


def test_non_integer_ids_are_not_found(registry):
    for bad_id in ("3", 3.0, None, True):
        with pytest.raises(DefinitionNotFoundError):
            registry.get(bad_id)


def test_get_by_id_matches_index_for_every_slot(registry):
    for definition_id in range(registry.capacity):
        try:
            assert registry.get(definition_id).id == definition_id
        except DefinitionNotFoundError:
            assert registry.find(definition_id) is None


def test_find_returns_none_for_missing(registry):
    assert registry.find(3) is GOBLIN
    assert registry.find(5) is None
    assert registry.find(-1) is None
    assert registry.find(10) is None


def test_name_for(registry):
    assert registry.name_for(3) == "Goblin"
    with pytest.raises(DefinitionNotFoundError):
        registry.name_for(4)


def test_all_is_ordered_and_restartable(registry):
    first = list(registry.all())
    second = list(registry.all())
    assert first == second
    for index, definition in enumerate(first):
        assert definition.id in (index, -1)


def test_populated_skips_defaults(registry):
    assert list(registry.populated()) == [GOBLIN]
    assert registry.populated_count == 1


def test_len_and_contains(registry):
    assert len(registry) == 10
    assert registry.capacity == 10
    assert 3 in registry
    assert 5 not in registry
    assert 10 not in registry


def test_empty_loader_leaves_all_defaults():
    registry = NpcDefinitionRegistry.build(lambda slots: None, capacity=4)
    assert all(d is DEFAULT_DEFINITION for d in registry.all())
    assert registry.populated_count == 0


def test_zero_capacity():
    registry = NpcDefinitionRegistry.build(lambda slots: None, capacity=0)
    assert list(registry.all()) == []
    with pytest.raises(DefinitionNotFoundError):
        registry.get(0)


def test_negative_capacity_rejected():
    with pytest.raises(ValueError):
        NpcDefinitionRegistry.build(lambda slots: None, capacity=-1)


def test_loader_writing_past_capacity_fails():
    def loader(slots):
        slots[10] = GOBLIN

    with pytest.raises(RegistryInitializationError):
        NpcDefinitionRegistry.build(loader, capacity=10)


def test_loader_writing_wrong_index_fails():
    def loader(slots):
        slots[4] = GOBLIN

    with pytest.raises(RegistryInitializationError):
        NpcDefinitionRegistry.build(loader, capacity=10)


def test_loader_negative_index_write_is_caught():
    def loader(slots):
        slots[-1] = GOBLIN

    with pytest.raises(RegistryInitializationError):
        NpcDefinitionRegistry.build(loader, capacity=10)


def test_loader_negative_index_onto_matching_slot_fails():
    # -7 would land on slot 3, which matches GOBLIN.id
    def loader(slots):
        slots[-7] = GOBLIN

    with pytest.raises(RegistryInitializationError):
        NpcDefinitionRegistry.build(loader, capacity=10)


def test_loader_slice_assignment_fails():
    def loader(slots):
        slots[3:4] = [GOBLIN]

    with pytest.raises(RegistryInitializationError):
        NpcDefinitionRegistry.build(loader, capacity=10)


def test_loader_changing_length_fails():
    def loader(slots):
        slots.append(DEFAULT_DEFINITION)

    with pytest.raises(RegistryInitializationError):
        NpcDefinitionRegistry.build(loader, capacity=10)


def test_loader_storing_non_definition_fails():
    def loader(slots):
        slots[2] = {"id": 2}

    with pytest.raises(RegistryInitializationError):
        NpcDefinitionRegistry.build(loader, capacity=10)


def test_loader_errors_propagate():
    def loader(slots):
        raise OSError("data source unavailable")

    with pytest.raises(OSError):
        NpcDefinitionRegistry.build(loader, capacity=10)


def test_table_cannot_be_mutated_after_build(registry):
    with pytest.raises(TypeError):
        registry._definitions[5] = GOBLIN


def test_to_frame_has_one_row_per_populated_definition(registry):
    frame = registry.to_frame()
    assert frame.height == 1
    row = frame.row(0, named=True)
    assert row["id"] == 3
    assert row["name"] == "Goblin"
    assert row["actions"] == ["Talk-to", "Attack"]
    assert frame.schema["actions"] == pl.List(pl.Utf8)


def test_to_frame_empty_registry():
    registry = NpcDefinitionRegistry.build(lambda slots: None, capacity=3)
    frame = registry.to_frame()
    assert frame.height == 0
    assert list(frame.columns) == list(registry_module.NPC_DEFINITION_SCHEMA)


def test_constructor_copies_caller_list():
    slots = [DEFAULT_DEFINITION] * 4
    slots[3] = GOBLIN
    registry = NpcDefinitionRegistry(slots)
    slots[3] = DEFAULT_DEFINITION
    assert registry.get(3) is GOBLIN


def test_constructor_rejects_wrong_index():
    with pytest.raises(RegistryInitializationError):
        NpcDefinitionRegistry([GOBLIN])


def test_constructor_rejects_non_definition():
    with pytest.raises(RegistryInitializationError):
        NpcDefinitionRegistry([DEFAULT_DEFINITION, "Goblin"])


def test_not_found_error_survives_pickle():
    error = DefinitionNotFoundError(5, "not loaded")
    restored = pickle.loads(pickle.dumps(error))
    assert isinstance(restored, DefinitionNotFoundError)
    assert restored.definition_id == 5
    assert restored.reason == "not loaded"
    assert str(restored) == str(error) == "No definition for id 5 (not loaded)"


# --- Process-wide registry ---
def test_read_before_init_fails(fresh_global_registry):
    assert not registry_module.is_ready()
    with pytest.raises(RegistryInitializationError):
        registry_module.definitions()
    with pytest.raises(RegistryInitializationError):
        registry_module.get_definition(3)


def test_init_publishes_registry(fresh_global_registry):
    published = registry_module.init_definitions(goblin_loader, capacity=10)
    assert registry_module.is_ready()
    assert registry_module.definitions() is published
    assert registry_module.get_definition(3) is GOBLIN
    assert registry_module.name_for(3) == "Goblin"
    assert len(list(registry_module.all_definitions())) == 10
    with pytest.raises(DefinitionNotFoundError):
        registry_module.get_definition(5)


def test_second_init_fails(fresh_global_registry):
    registry_module.init_definitions(goblin_loader, capacity=10)
    with pytest.raises(RegistryInitializationError):
        registry_module.init_definitions(goblin_loader, capacity=10)
    # The first table stays published
    assert registry_module.get_definition(3) is GOBLIN


def test_failed_init_publishes_nothing(fresh_global_registry):
    def loader(slots):
        raise ValueError("bad data")

    with pytest.raises(ValueError):
        registry_module.init_definitions(loader, capacity=10)
    assert not registry_module.is_ready()


def test_concurrent_init_runs_loader_once(fresh_global_registry):
    calls = []
    errors = []

    def loader(slots):
        calls.append(1)
        slots[3] = GOBLIN

    def worker():
        try:
            registry_module.init_definitions(loader, capacity=10)
        except RegistryInitializationError as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert len(errors) == 7
    assert registry_module.get_definition(3) is GOBLIN


def test_concurrent_reads_see_same_data(fresh_global_registry):
    registry_module.init_definitions(goblin_loader, capacity=10)
    results = []

    def reader():
        for _ in range(100):
            results.append(registry_module.get_definition(3))

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 400
    assert all(r is GOBLIN for r in results)
