import pytest
from datetime import timedelta
from conftest import FlakyStore, options_of, questions_in
from studybank.core.errors import NotFoundError, PersistenceError, ValidationError
from studybank.models.orm import Answer, Option, Question, Subject, Topic, utcnow
from studybank.models.schemas import BatchPayload, BatchQuestion, QuestionPayload
from studybank.services import ingestion, sessions, answers


def payload(**kw):
    base = dict(
        subject_name="Math", topic_name="Algebra", statement="2 + 2 = ?",
        explanation="Addition", tips=None, banca="FGV", ano=2023, orgao="TCU", cargo="Auditor",
        options=["3", "4", "5"], correct_option_index=1,
    )
    base.update(kw)
    return QuestionPayload(**base)


def batch(questions, **kw):
    shared = dict(subject_name="Math", topic_name="Algebra", banca="CESPE", ano=2022, orgao="STF", cargo="Analista")
    shared.update(kw)
    return BatchPayload(questions=questions, **shared)


def bq(options, correct, statement="Q"):
    return BatchQuestion(statement=statement, options=options, correct_option_index=correct)


def correct_count(store, question_id):
    return sum(1 for o in options_of(store, question_id) if o.is_correct)


# ---------- single creation ----------

def test_create_question_writes_question_and_options(store):
    qid = ingestion.create_question(store, payload())
    q = store.select_one(Question, {"id": qid})
    assert q.statement == "2 + 2 = ?"
    assert (q.banca, q.ano, q.orgao, q.cargo) == ("FGV", 2023, "TCU", "Auditor")
    opts = options_of(store, qid)
    assert [o.option_text for o in opts] == ["3", "4", "5"]
    assert [o.is_correct for o in opts] == [False, True, False]


@pytest.mark.parametrize("options,correct", [
    (["only one"], 0),
    (["a", "", "c"], 0),
    (["a", "b"], 2),
    (["a", "b"], -1),
])
def test_create_question_rejects_invalid_options_before_writing(store, options, correct):
    with pytest.raises(ValidationError):
        ingestion.create_question(store, payload(options=options, correct_option_index=correct))
    assert store.count(Question) == 0
    assert store.count(Subject) == 0


def test_create_question_surfaces_options_failure_and_leaves_orphan(db):
    flaky = FlakyStore(db, fail_on=lambda entity, rows, call: entity is Option)
    with pytest.raises(PersistenceError):
        ingestion.create_question(flaky, payload())
    # no compensating delete: the question row stays behind without options
    assert flaky.count(Question) == 1
    assert flaky.count(Option) == 0


def test_create_question_surfaces_question_insert_failure(db):
    flaky = FlakyStore(db, fail_on=lambda entity, rows, call: entity is Question)
    with pytest.raises(PersistenceError):
        ingestion.create_question(flaky, payload())
    assert flaky.count(Option) == 0


# ---------- batch creation ----------

def test_batch_shifts_correct_index_past_blank_options(store):
    result = ingestion.create_batch(store, batch([bq(["A", "", "B"], 2)]))
    assert (result.created_count, result.total_attempted) == (1, 1)
    qid = store.select_one(Question).id
    opts = options_of(store, qid)
    assert [o.option_text for o in opts] == ["A", "B"]
    assert [o.is_correct for o in opts] == [False, True]


def test_batch_skips_question_with_single_non_blank_option(store):
    result = ingestion.create_batch(store, batch([bq(["A", "  ", ""], 0), bq(["x", "y"], 0)]))
    assert result.created_count == 1
    assert result.total_attempted == 2
    assert store.count(Question) == 1


def test_batch_skips_question_whose_correct_option_is_blank(store):
    result = ingestion.create_batch(store, batch([bq(["A", "", "B"], 1)]))
    assert result.created_count == 0
    assert store.count(Question) == 0


def test_batch_shares_taxonomy_and_exam_metadata(store):
    ingestion.create_batch(store, batch([bq(["a", "b"], 0, "one"), bq(["c", "d"], 1, "two")]))
    assert store.count(Subject) == 1
    assert store.count(Topic) == 1
    rows = store.select_many(Question)
    assert {(q.banca, q.ano, q.orgao, q.cargo) for q in rows} == {("CESPE", 2022, "STF", "Analista")}
    assert len({(q.subject_id, q.topic_id) for q in rows}) == 1


def test_batch_continues_after_question_insert_failure(db):
    seen = []

    def fail_second_question(entity, fields, call):
        if entity is Question:
            seen.append(fields["statement"])
            return fields["statement"] == "bad"
        return False

    flaky = FlakyStore(db, fail_on=fail_second_question)
    result = ingestion.create_batch(flaky, batch([bq(["a", "b"], 0, "ok1"), bq(["a", "b"], 0, "bad"), bq(["a", "b"], 0, "ok2")]))
    assert seen == ["ok1", "bad", "ok2"]
    assert (result.created_count, result.total_attempted) == (2, 3)


def test_batch_options_failure_counts_as_not_created(db):
    state = {"option_calls": 0}

    def fail_first_options(entity, rows, call):
        if entity is Option:
            state["option_calls"] += 1
            return state["option_calls"] == 1
        return False

    flaky = FlakyStore(db, fail_on=fail_first_options)
    result = ingestion.create_batch(flaky, batch([bq(["a", "b"], 0, "first"), bq(["c", "d"], 1, "second")]))
    assert (result.created_count, result.total_attempted) == (1, 2)
    # the first question row is orphaned, not cleaned up
    assert flaky.count(Question) == 2


def test_batch_never_raises_for_per_question_problems(store):
    qs = [bq([], 0), bq(["", ""], 0), bq(["a", "b", "c"], 5), bq(["a", "b"], 1)]
    result = ingestion.create_batch(store, batch(qs))
    assert result.total_attempted == len(qs)
    assert result.created_count == 1


def test_every_created_question_has_exactly_one_correct_option(store):
    ingestion.create_question(store, payload())
    ingestion.create_batch(store, batch([bq(["A", "", "B", "C"], 3), bq(["x", "y"], 0)]))
    for q in store.select_many(Question):
        assert correct_count(store, q.id) == 1


# ---------- update / delete ----------

def test_update_replaces_all_options(store):
    qid = ingestion.create_question(store, payload())
    old_ids = {o.id for o in options_of(store, qid)}
    ingestion.update_question(store, qid, payload(
        subject_name="Physics", topic_name="Kinematics", statement="v = ?",
        options=["d/t", "t/d"], correct_option_index=0,
    ))
    q = store.select_one(Question, {"id": qid})
    assert q.statement == "v = ?"
    assert store.select_one(Subject, {"id": q.subject_id}).name == "Physics"
    opts = options_of(store, qid)
    assert [o.option_text for o in opts] == ["d/t", "t/d"]
    assert not old_ids & {o.id for o in opts}
    assert correct_count(store, qid) == 1


def test_update_unknown_question(store):
    with pytest.raises(NotFoundError):
        ingestion.update_question(store, "missing", payload())


def test_delete_question_cascades_to_options_and_answers(store):
    qid = ingestion.create_question(store, payload())
    subject_id = store.select_one(Question, {"id": qid}).subject_id
    sid = sessions.start(store, "u1", subject_id)
    opt = options_of(store, qid)[0]
    answers.record(store, "u1", qid, opt.id, False, sid)

    ingestion.delete_question(store, qid)
    assert store.count(Question) == 0
    assert store.count(Option) == 0
    assert store.count(Answer) == 0


def test_delete_subject_cascades(store):
    qid = ingestion.create_question(store, payload())
    subject_id = store.select_one(Question, {"id": qid}).subject_id
    ingestion.delete_subject(store, subject_id)
    assert store.count(Subject) == 0
    assert store.count(Topic) == 0
    assert store.count(Question) == 0


def test_delete_missing_rows(store):
    with pytest.raises(NotFoundError):
        ingestion.delete_question(store, "nope")
    with pytest.raises(NotFoundError):
        ingestion.delete_subject(store, "nope")


# ---------- read paths ----------

def test_practice_set_leaves_out_unusable_questions(db):
    flaky = FlakyStore(db, fail_on=lambda entity, rows, call: entity is Option and call > 4)
    good = ingestion.create_question(flaky, payload(statement="good"))
    with pytest.raises(PersistenceError):
        ingestion.create_question(flaky, payload(statement="orphan"))
    subject_id = flaky.select_one(Question, {"id": good}).subject_id

    practice = ingestion.load_practice_set(flaky, subject_id)
    assert practice.subject_name == "Math"
    assert [q.statement for q in practice.questions] == ["good"]
    assert len(practice.questions[0].options) == 3


def test_practice_set_unknown_subject(store):
    with pytest.raises(NotFoundError):
        ingestion.load_practice_set(store, "nope")


def test_list_questions_paginates_newest_first(store):
    for n in range(8):
        qid = ingestion.create_question(store, payload(statement=f"q{n}"))
        store.update(Question, qid, {"created_at": utcnow() + timedelta(minutes=n)})
    page1 = ingestion.list_questions(store, page=1, page_size=6)
    page2 = ingestion.list_questions(store, page=2, page_size=6)
    assert page1.total == 8
    assert [q.statement for q in page1.items] == [f"q{n}" for n in range(7, 1, -1)]
    assert [q.statement for q in page2.items] == ["q1", "q0"]
    assert page1.items[0].subject_name == "Math"
    assert page1.items[0].topic_name == "Algebra"


def test_sweep_removes_only_old_orphans(db):
    flaky = FlakyStore(db, fail_on=lambda entity, rows, call: entity is Option and call > 4)
    keep = ingestion.create_question(flaky, payload(statement="complete"))
    for statement in ("old orphan", "new orphan"):
        with pytest.raises(PersistenceError):
            ingestion.create_question(flaky, payload(statement=statement))
    old = flaky.select_one(Question, {"statement": "old orphan"})
    flaky.update(Question, old.id, {"created_at": utcnow() - timedelta(hours=3)})
    flaky.update(Question, keep, {"created_at": utcnow() - timedelta(hours=3)})
    cutoff = utcnow() - timedelta(hours=1)

    assert ingestion.sweep_orphan_questions(flaky, cutoff, dry_run=True) == [old.id]
    assert flaky.count(Question) == 3

    assert ingestion.sweep_orphan_questions(flaky, cutoff) == [old.id]
    assert {q.statement for q in flaky.select_many(Question)} == {"complete", "new orphan"}
