import pytest
from conftest import FlakyStore
from studybank.core.errors import PersistenceError, ValidationError
from studybank.models.orm import Subject, Topic
from studybank.services.taxonomy import resolve


def test_resolve_twice_returns_same_pair(store):
    first = resolve(store, "Math", "Algebra")
    second = resolve(store, "Math", "Algebra")
    assert first == second
    assert store.count(Subject) == 1
    assert store.count(Topic) == 1


def test_resolve_matches_case_insensitively_on_trimmed_name(store):
    subject_id, topic_id = resolve(store, "Math", "Algebra")
    assert resolve(store, "  mATH ", "algebra  ") == (subject_id, topic_id)
    assert store.select_one(Subject, {"id": subject_id}).name == "Math"


def test_topics_are_scoped_to_their_subject(store):
    _, math_topic = resolve(store, "Math", "Basics")
    _, physics_topic = resolve(store, "Physics", "Basics")
    assert math_topic != physics_topic
    assert store.count(Topic) == 2


def test_resolve_without_topic(store):
    subject_id, topic_id = resolve(store, "History")
    assert subject_id
    assert topic_id is None


def test_blank_subject_is_rejected(store):
    with pytest.raises(ValidationError):
        resolve(store, "   ", "x")


def test_failed_topic_create_leaves_subject_for_retry(db):
    flaky = FlakyStore(db, fail_on=lambda entity, fields, call: entity is Topic and call == 2)
    with pytest.raises(PersistenceError):
        resolve(flaky, "Chemistry", "Organic")
    assert flaky.count(Subject) == 1

    subject_id, topic_id = resolve(flaky, "chemistry", "Organic")
    assert flaky.count(Subject) == 1
    assert flaky.select_one(Subject, {"id": subject_id}).name == "Chemistry"
    assert topic_id is not None
