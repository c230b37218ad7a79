"""
Preference store: preferences + bounded calculation history.
"""

from costflow import models
from costflow.runner import CalculationRecord
from costflow.store import PreferenceStore


def _sample_record(n=0, calculator="concrete"):
    return CalculationRecord(type=calculator, title="Concrete Slab",
                             inputs={"length": 20 + n}, results={"total": 100.0 + n})

def test_preference_defaults(store):
    assert store.get_preferences() == {"units": "imperial", "region": "national"}

def test_set_preference_persists_across_instances(store, session_factory):
    store.set_preference("region", "ca")
    again = PreferenceStore(session_factory, namespace="costflow")
    assert again.get_preferences()["region"] == "ca"
    assert again.get_preferences()["units"] == "imperial"

def test_corrupt_preferences_fall_back(store, db_session, caplog):
    db_session.add(models.StoredValue(key="costflow.preferences", value="{not json"))
    db_session.commit()
    assert store.get_preferences() == {"units": "imperial", "region": "national"}
    assert "Storage read failed" in caplog.text

def test_namespaces_are_isolated(store, session_factory):
    store.set_preference("units", "metric")
    other = PreferenceStore(session_factory, namespace="other")
    assert other.get_preferences()["units"] == "imperial"

def test_history_newest_first(store):
    store.remember_calculation(_sample_record(1))
    store.remember_calculation(_sample_record(2))
    history = store.history("concrete")
    assert [h["results"]["total"] for h in history] == [102.0, 101.0]
    assert history[0]["type"] == "concrete"
    assert isinstance(history[0]["timestamp"], str)
    assert store.history("paint") == []

def test_history_is_capped(session_factory):
    store = PreferenceStore(session_factory, history_limit=3)
    for n in range(5):
        store.remember_calculation(_sample_record(n))
    history = store.history("concrete")
    assert len(history) == 3
    assert history[0]["inputs"]["length"] == 24
    assert history[-1]["inputs"]["length"] == 22

def test_clear_history(store):
    store.remember_calculation(_sample_record())
    store.remember_calculation(_sample_record(calculator="paint"))
    store.clear_history("concrete")
    assert store.history("concrete") == []
    assert len(store.history("paint")) == 1
