from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from api.models.db import Exam, ExamSection, Question
from api.services import variant_service
from api.services.variant_service import (
    DraftVariantInfo,
    ExamVariantShapeError,
    PublishPolicy,
    VariantCreationError,
    assert_exam_variant_shape,
    create_exam_variants,
    exam_applies_to_class_ids,
    get_draft_variants_for_base_exam,
    get_publish_policy_result,
    resolve_published_exams_for_classes,
)


def exam_shape(exam_id, parent=None, class_id=None, class_ids=None):
    return SimpleNamespace(
        id=exam_id,
        parent_exam_id=parent,
        class_id=class_id,
        class_ids=class_ids if class_ids is not None else [],
    )


def test_normalize_class_ids() -> None:
    assert variant_service.normalize_class_ids(["a", 1, None, "b"]) == ["a", "b"]
    assert variant_service.normalize_class_ids("a") == []
    assert variant_service.normalize_class_ids(None) == []


def test_exam_applies_to_class_ids() -> None:
    assert exam_applies_to_class_ids(exam_shape("e", class_ids=[]), ["x"])
    assert exam_applies_to_class_ids(exam_shape("e", class_ids=["x", "y"]), ["y"])
    assert not exam_applies_to_class_ids(exam_shape("e", class_ids=["x"]), ["z"])


def test_assert_exam_variant_shape_accepts_valid_shapes() -> None:
    assert_exam_variant_shape(exam_shape("base", class_ids=["a"]), "test", expect="base")
    assert_exam_variant_shape(exam_shape("v", parent="base", class_id="a"), "test", expect="variant")


@pytest.mark.parametrize(
    ("exam", "expect"),
    [
        (exam_shape("base"), "variant"),
        (exam_shape("v", parent="base", class_id="a"), "base"),
        (exam_shape("v", parent="base", class_id="a", class_ids=["a"]), None),
        (exam_shape("x", parent="base"), None),
        (exam_shape("x", class_id="a"), None),
    ],
)
def test_assert_exam_variant_shape_rejects(exam, expect, caplog: pytest.LogCaptureFixture) -> None:
    with pytest.raises(ExamVariantShapeError):
        assert_exam_variant_shape(exam, "test", expect=expect)
    assert "[ExamInvariant]" in caplog.text


def test_resolve_published_exams_prefers_variants() -> None:
    base_all = exam_shape("base-all")
    base_a = exam_shape("base-a", class_ids=["a"])
    base_b = exam_shape("base-b", class_ids=["b"])
    variant = exam_shape("variant-a", parent="base-a", class_id="a")

    visible = resolve_published_exams_for_classes([base_all, base_a, base_b], [variant], ["a"], "test")

    assert [exam.id for exam in visible] == ["variant-a", "base-all"]


def test_publish_policy_results() -> None:
    drafts = [
        DraftVariantInfo(
            id="v1",
            class_id="b",
            title="t",
            updated_at=datetime.now(timezone.utc),
            class_name="Group B",
        )
    ]
    base_class_ids = ["a", "b"]

    publish_all = get_publish_policy_result(PublishPolicy.PUBLISH_ALL, base_class_ids, drafts)
    assert publish_all.updated_class_ids == ["a", "b"]
    assert publish_all.deleted_draft_variant_ids == []
    assert publish_all.affected_draft_sections == [{"class_id": "b", "class_name": "Group B"}]

    except_drafts = get_publish_policy_result(
        PublishPolicy.PUBLISH_EXCEPT_DRAFT_SECTIONS, base_class_ids, drafts
    )
    assert except_drafts.updated_class_ids == ["a"]

    delete_drafts = get_publish_policy_result(
        PublishPolicy.DELETE_DRAFTS_THEN_PUBLISH, base_class_ids, drafts
    )
    assert delete_drafts.updated_class_ids == ["a", "b"]
    assert delete_drafts.deleted_draft_variant_ids == ["v1"]


def test_create_variants_clones_content(db, seed) -> None:
    result = create_exam_variants(db, "exam-1", ["class-a"], seed.teacher)

    assert result.skipped == []
    assert len(result.created) == 1
    assert result.created[0]["class_id"] == "class-a"

    variant = db.get(Exam, result.created[0]["id"])
    assert variant.parent_exam_id == "exam-1"
    assert variant.class_id == "class-a"
    assert variant.class_ids == []
    assert variant.duration_minutes == 45
    assert variant.grading_config == {"mode": "manual"}

    base = db.get(Exam, "exam-1")
    assert base.class_ids == ["class-a"]

    sections = db.execute(select(ExamSection).where(ExamSection.exam_id == variant.id)).scalars().all()
    assert len(sections) == 1
    assert sections[0].intro_content == seed.exam.sections[0].intro_content

    cloned = sections[0].questions[0]
    assert cloned.id != "question-1"
    # content blobs are copied byte for byte
    assert cloned.content == seed.question.content
    assert cloned.max_points == 4
    assert cloned.segments[0].instruction == "Find x"
    assert cloned.segments[0].rubric.criteria == "Both roots"
    assert cloned.segments[0].rubric.levels == [{"points": 4, "label": "full"}]


def test_create_variants_leaves_source_untouched(db, seed) -> None:
    create_exam_variants(db, "exam-1", ["class-a"], seed.teacher)
    questions = db.execute(select(Question)).scalars().all()
    assert len(questions) == 2
    original = db.get(Question, "question-1")
    assert original.section.exam_id == "exam-1"


def test_create_variants_skips_existing(db, seed) -> None:
    create_exam_variants(db, "exam-1", ["class-a"], seed.teacher)
    result = create_exam_variants(db, "exam-1", ["class-a", "class-a"], seed.teacher)
    assert result.created == []
    assert result.skipped == ["class-a"]


def test_create_variants_admin_any_class(db, seed) -> None:
    result = create_exam_variants(db, "exam-1", ["class-a", "class-b"], seed.admin)
    assert sorted(item["class_id"] for item in result.created) == ["class-a", "class-b"]
    assert sorted(db.get(Exam, "exam-1").class_ids) == ["class-a", "class-b"]


@pytest.mark.parametrize("class_ids", [[], [""], [None, 3]])
def test_create_variants_requires_class_ids(db, seed, class_ids) -> None:
    with pytest.raises(VariantCreationError) as exc_info:
        create_exam_variants(db, "exam-1", class_ids, seed.teacher)
    assert exc_info.value.status_code == 400
    assert str(exc_info.value) == "Missing classIds"


def test_create_variants_rejects_untaught_class(db, seed) -> None:
    with pytest.raises(VariantCreationError) as exc_info:
        create_exam_variants(db, "exam-1", ["class-b"], seed.teacher)
    assert exc_info.value.status_code == 403


@pytest.mark.parametrize("class_id", ["class-old", "missing"])
def test_create_variants_rejects_invalid_class(db, seed, class_id) -> None:
    with pytest.raises(VariantCreationError) as exc_info:
        create_exam_variants(db, "exam-1", [class_id], seed.admin)
    assert exc_info.value.status_code == 400
    assert str(exc_info.value) == "Invalid classIds for this course"


def test_create_variants_requires_edit_permission(db, seed) -> None:
    with pytest.raises(VariantCreationError) as exc_info:
        create_exam_variants(db, "exam-1", ["class-a"], seed.course_teacher)
    assert exc_info.value.status_code == 403
    assert str(exc_info.value) == "Forbidden"


def test_create_variants_hidden_exam(db, seed) -> None:
    with pytest.raises(VariantCreationError) as exc_info:
        create_exam_variants(db, "exam-1", ["class-a"], seed.outsider)
    assert exc_info.value.status_code == 403
    assert str(exc_info.value) == "Unauthorized"


def test_create_variants_not_from_variant(db, seed, make_variant) -> None:
    make_variant("class-a")
    with pytest.raises(ExamVariantShapeError):
        create_exam_variants(db, "variant-1", ["class-b"], seed.admin)


def test_get_draft_variants_for_base_exam(db, seed) -> None:
    create_exam_variants(db, "exam-1", ["class-a"], seed.teacher)
    drafts = get_draft_variants_for_base_exam(db, "exam-1")
    assert len(drafts) == 1
    assert drafts[0].class_id == "class-a"
    assert drafts[0].class_name == "Group A"
