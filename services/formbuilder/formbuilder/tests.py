"""Tests for the form builder service."""
from __future__ import annotations

import itertools
from typing import Optional
from unittest import mock

import requests
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APIClient

from . import field_types, ids, reorder, validation
from .exceptions import (
    FieldUniquenessConflict,
    FormNotFound,
    IdGenerationExhausted,
    StorageFailure,
    TitleConflict,
    ValidationFailed,
)
from .field_list import (
    Field,
    FieldList,
    duplicate_name,
    move,
    to_safe_snake,
    unique_field_name,
)
from .models import Form, FormField, FormSubmission, FormVersion
from .reorder import Box, DragSession
from .services import FormCoordinator, submission_prefix
from .store import FormStore
from .tasks import forward_submission, record_submission

ROW_HEIGHT = 10


def _make_list(*names: str) -> FieldList:
    return FieldList(
        Field(id=f"id_{name}", type="singleLine", label=name.title(), name=name) for name in names
    )


class MoveTests(SimpleTestCase):
    def test_move_relocates_one_element_and_keeps_the_rest_in_order(self) -> None:
        items = ["a", "b", "c", "d", "e"]
        for from_index, to_index in itertools.permutations(range(len(items)), 2):
            moved = move(items, from_index, to_index)
            self.assertEqual(len(moved), len(items))
            self.assertEqual(sorted(moved), sorted(items))
            self.assertEqual(moved[to_index], items[from_index])
            rest_before = [item for item in items if item != items[from_index]]
            rest_after = [item for item in moved if item != items[from_index]]
            self.assertEqual(rest_before, rest_after)

    def test_same_index_returns_input(self) -> None:
        items = ["a", "b", "c"]
        for index in range(len(items)):
            self.assertIs(move(items, index, index), items)

    def test_out_of_range_indexes_are_ignored(self) -> None:
        items = ["a", "b", "c"]
        self.assertIs(move(items, -1, 0), items)
        self.assertIs(move(items, 3, 0), items)
        self.assertIs(move(items, 0, 4), items)
        self.assertIs(move(items, 0, -1), items)

    def test_move_to_length_appends(self) -> None:
        self.assertEqual(move(["a", "b", "c"], 0, 3), ["b", "c", "a"])

    def test_field_list_move_preserves_identity(self) -> None:
        fields = _make_list("first", "second", "third")
        moved = fields.move(0, 2)
        self.assertEqual(moved.ids(), ["id_second", "id_third", "id_first"])
        self.assertEqual(fields.ids(), ["id_first", "id_second", "id_third"])
        self.assertIs(moved[0], fields[1])
        self.assertIs(fields.move(1, 1), fields)


class FieldListTests(SimpleTestCase):
    def test_insert_assigns_missing_id(self) -> None:
        fields = FieldList()
        field = fields.insert(Field(type="email", label="Email", name="email"))
        self.assertRegex(field.id, r"^field_[0-9a-z]{8}$")
        self.assertEqual(fields.ids(), [field.id])

    def test_insert_keeps_supplied_id_and_can_prepend(self) -> None:
        fields = _make_list("a")
        fields.insert(Field(id="keep", type="number", label="N", name="n"), at_end=False)
        self.assertEqual(fields.ids(), ["keep", "id_a"])

    def test_remove_by_id(self) -> None:
        fields = _make_list("a", "b")
        self.assertTrue(fields.remove_by_id("id_a"))
        self.assertFalse(fields.remove_by_id("id_a"))
        self.assertEqual(fields.ids(), ["id_b"])

    def test_duplicate_continues_trailing_number(self) -> None:
        fields = _make_list("email2")
        copy = fields.duplicate("id_email2")
        assert copy is not None
        self.assertEqual(copy.name, "email3")
        self.assertEqual(fields[0].name, "email2")
        self.assertEqual(fields.ids(), ["id_email2", copy.id])
        self.assertNotEqual(copy.id, "id_email2")
        self.assertEqual(copy.label, fields[0].label)

    def test_duplicate_skips_taken_suffixes(self) -> None:
        fields = _make_list("email2", "email3", "email4")
        copy = fields.duplicate("id_email2")
        assert copy is not None
        self.assertEqual(copy.name, "email5")
        self.assertEqual(fields.names(), ["email2", "email5", "email3", "email4"])

    def test_duplicate_without_number_starts_at_one(self) -> None:
        fields = _make_list("phone")
        first = fields.duplicate("id_phone")
        second = fields.duplicate("id_phone")
        assert first is not None and second is not None
        self.assertEqual(first.name, "phone1")
        self.assertEqual(second.name, "phone2")
        self.assertEqual(len(set(fields.names())), len(fields))

    def test_duplicate_copies_options_independently(self) -> None:
        fields = FieldList([Field(id="pick", type="dropdown", label="Pick", name="pick", options=["a"])])
        copy = fields.duplicate("pick")
        assert copy is not None
        copy.options.append("b")
        self.assertEqual(fields[0].options, ["a"])

    def test_duplicate_unknown_id(self) -> None:
        self.assertIsNone(_make_list("a").duplicate("missing"))

    def test_add_uses_type_defaults(self) -> None:
        fields = FieldList()
        first = fields.add("dropdown")
        second = fields.add("dropdown")
        self.assertEqual(first.label, "Dropdown")
        self.assertEqual(first.options, ["Option 1", "Option 2"])
        self.assertEqual(first.placeholder, "Select…")
        self.assertEqual(first.name, "dropdown")
        self.assertEqual(second.name, "dropdown1")

    def test_positioned_follows_list_order(self) -> None:
        fields = _make_list("a", "b", "c").move(2, 0)
        positioned = fields.positioned()
        self.assertEqual([field.position for field in positioned], [0, 1, 2])
        self.assertEqual([field.id for field in positioned], ["id_c", "id_a", "id_b"])
        self.assertIsNone(fields[0].position)

    def test_from_payload_accepts_client_keys(self) -> None:
        fields = FieldList.from_payload(
            [
                {
                    "type": "checkboxes",
                    "label": "Tags",
                    "name": "tags",
                    "doNotStore": True,
                    "options": "red, , blue",
                }
            ]
        )
        field = fields[0]
        self.assertTrue(field.do_not_store)
        self.assertEqual(field.options, ["red", "blue"])
        self.assertRegex(field.id, r"^field_")

    def test_insert_replaces_used_id(self) -> None:
        fields = _make_list("a")
        field = fields.insert(Field(id="id_a", type="email", label="Email", name="email"))
        self.assertNotEqual(field.id, "id_a")
        self.assertEqual(len(set(fields.ids())), 2)

    def test_from_payload_keeps_ids_distinct(self) -> None:
        fields = FieldList.from_payload(
            [
                {"id": "field_same0000", "type": "singleLine", "label": "A", "name": "a"},
                {"id": "field_same0000", "type": "singleLine", "label": "B", "name": "b"},
            ]
        )
        self.assertEqual(fields[0].id, "field_same0000")
        self.assertEqual(len(set(fields.ids())), 2)



class NamingTests(SimpleTestCase):
    def test_to_safe_snake(self) -> None:
        self.assertEqual(to_safe_snake("Full Name"), "full_name")
        self.assertEqual(to_safe_snake("  E-mail address! "), "e_mail_address")
        self.assertEqual(to_safe_snake("2nd choice"), "field_2nd_choice")
        self.assertEqual(to_safe_snake("???"), "field")
        self.assertEqual(to_safe_snake(None), "field")

    def test_unique_field_name(self) -> None:
        self.assertEqual(unique_field_name("email", []), "email")
        self.assertEqual(unique_field_name("email", ["email"]), "email1")
        self.assertEqual(unique_field_name("email", ["email", "email1"]), "email2")

    def test_duplicate_name_normalizes_source(self) -> None:
        self.assertEqual(duplicate_name("Email 2", ["Email 2"]), "email_3")

    def test_numbered_names_fit_the_name_limit(self) -> None:
        longest = "a" * field_types.MAX_NAME_LENGTH
        copy = duplicate_name(longest, [longest])
        self.assertEqual(copy, "a" * (field_types.MAX_NAME_LENGTH - 1) + "1")

        numbered = "x" * (field_types.MAX_NAME_LENGTH - 2) + "99"
        copy = duplicate_name(numbered, [numbered])
        self.assertEqual(len(copy), field_types.MAX_NAME_LENGTH)
        self.assertTrue(copy.endswith("x100"))

        self.assertEqual(unique_field_name("b" * 70, []), "b" * field_types.MAX_NAME_LENGTH)
        taken = ["c" * field_types.MAX_NAME_LENGTH]
        self.assertEqual(len(unique_field_name("c" * 70, taken)), field_types.MAX_NAME_LENGTH)

    def test_default_name_from_long_label_is_valid(self) -> None:
        fields = FieldList()
        field = fields.add("singleLine", label="Please describe " * 10)
        self.assertLessEqual(len(field.name), field_types.MAX_NAME_LENGTH)
        self.assertIsNone(validation.check_field(field))



def _fields(*field_ids: str) -> FieldList:
    return FieldList(
        Field(id=field_id, type="singleLine", label=field_id, name=field_id.lower()) for field_id in field_ids
    )


def _boxes(count: int):
    return [Box(top=index * ROW_HEIGHT, height=ROW_HEIGHT) for index in range(count)]


class ComputeIndexTests(SimpleTestCase):
    def test_index_is_before_first_box_below_pointer(self) -> None:
        boxes = _boxes(4)
        self.assertEqual(reorder.compute_index(0, boxes), 0)
        self.assertEqual(reorder.compute_index(4.9, boxes), 0)
        self.assertEqual(reorder.compute_index(5, boxes), 1)
        self.assertEqual(reorder.compute_index(22, boxes), 2)
        self.assertEqual(reorder.compute_index(38, boxes), 4)
        self.assertEqual(reorder.compute_index(500, boxes), 4)

    def test_empty_list(self) -> None:
        self.assertEqual(reorder.compute_index(12, []), 0)

    def test_drop_target_corrects_for_removed_element(self) -> None:
        target = reorder.compute_drop_target(2, 4)
        self.assertEqual(target.to, 3)
        self.assertFalse(target.noop)

        target = reorder.compute_drop_target(3, 0)
        self.assertEqual(target.to, 0)
        self.assertFalse(target.noop)

    def test_drop_on_own_edges_is_noop(self) -> None:
        self.assertTrue(reorder.compute_drop_target(1, 1).noop)
        self.assertTrue(reorder.compute_drop_target(1, 2).noop)


class DragGestureTests(SimpleTestCase):
    def _drag(self, fields: FieldList, field_id: str, pointer_y: float) -> reorder.DropOutcome:
        session = reorder.begin_drag(fields, field_id)
        session = reorder.drag_over(session, pointer_y, _boxes(len(fields)))
        return reorder.drop(session, fields)

    def test_drag_to_end(self) -> None:
        fields = _fields("A", "B", "C", "D")
        outcome = self._drag(fields, "C", 38)
        assert outcome.target is not None
        self.assertEqual(outcome.target.raw_to, 4)
        self.assertEqual(outcome.target.to, 3)
        self.assertTrue(outcome.moved)
        self.assertEqual(outcome.fields.ids(), ["A", "B", "D", "C"])
        self.assertEqual(outcome.session, reorder.IDLE)

    def test_drag_down_between_rows(self) -> None:
        outcome = self._drag(_fields("A", "B", "C", "D"), "A", 22)
        self.assertEqual(outcome.fields.ids(), ["B", "A", "C", "D"])

    def test_drag_to_top(self) -> None:
        outcome = self._drag(_fields("A", "B", "C", "D"), "D", 1)
        self.assertEqual(outcome.fields.ids(), ["D", "A", "B", "C"])

    def test_drop_in_place_does_not_move(self) -> None:
        fields = _fields("A", "B", "C", "D")
        for pointer_y in (12, 18):
            outcome = self._drag(fields, "B", pointer_y)
            self.assertFalse(outcome.moved)
            self.assertIs(outcome.fields, fields)
            self.assertEqual(outcome.session, reorder.IDLE)

    def test_drag_over_tracks_preview(self) -> None:
        fields = _fields("A", "B", "C")
        session = reorder.begin_drag(fields, "B")
        self.assertEqual(session, DragSession(dragging_id="B", from_index=1))
        session = reorder.drag_over(session, 26, _boxes(3))
        self.assertEqual(session.preview_index, 3)
        session = reorder.drag_over(session, 2, _boxes(3))
        self.assertEqual(session.preview_index, 0)

    def test_begin_unknown_field_is_idle(self) -> None:
        session = reorder.begin_drag(_fields("A"), "missing")
        self.assertFalse(session.active)
        self.assertEqual(reorder.drag_over(session, 3, _boxes(1)), session)

    def test_end_drag_cancels(self) -> None:
        fields = _fields("A", "B")
        session = reorder.drag_over(reorder.begin_drag(fields, "A"), 18, _boxes(2))
        self.assertEqual(reorder.end_drag(session), reorder.IDLE)

    def test_drop_without_preview_uses_target_box(self) -> None:
        fields = _fields("A", "B", "C", "D")
        session = reorder.begin_drag(fields, "A")
        outcome = reorder.drop(session, fields, pointer_y=38, target_index=3, target_box=Box(30, ROW_HEIGHT))
        self.assertEqual(outcome.fields.ids(), ["B", "C", "D", "A"])

        outcome = reorder.drop(session, fields, pointer_y=31, target_index=3, target_box=Box(30, ROW_HEIGHT))
        self.assertEqual(outcome.fields.ids(), ["B", "C", "A", "D"])

    def test_drop_without_preview_or_target_cancels(self) -> None:
        fields = _fields("A", "B")
        outcome = reorder.drop(reorder.begin_drag(fields, "A"), fields)
        self.assertFalse(outcome.moved)
        self.assertIsNone(outcome.target)
        self.assertIs(outcome.fields, fields)
        self.assertEqual(outcome.session, reorder.IDLE)

    def test_drop_with_idle_session(self) -> None:
        fields = _fields("A", "B")
        outcome = reorder.drop(reorder.IDLE, fields, pointer_y=18, target_index=1, target_box=Box(10, 10))
        self.assertFalse(outcome.moved)
        self.assertIs(outcome.fields, fields)

    def test_list_changed_during_drag(self) -> None:
        fields = _fields("A", "B", "C")
        session = reorder.drag_over(reorder.begin_drag(fields, "C"), 1, _boxes(3))
        fields.remove_by_id("A")
        with self.assertLogs("formbuilder.reorder", level="WARNING"):
            outcome = reorder.drop(session, fields)
        self.assertFalse(outcome.moved)
        self.assertEqual(fields.ids(), ["B", "C"])

    def test_preview_beyond_list_is_clamped(self) -> None:
        fields = _fields("A", "B", "C")
        session = DragSession(dragging_id="A", from_index=0, preview_index=9)
        outcome = reorder.drop(session, fields)
        self.assertEqual(outcome.fields.ids(), ["B", "C", "A"])


def _rule_field(**overrides) -> Field:
    values = {"id": "f1", "type": "singleLine", "label": "Name", "name": "name"}
    values.update(overrides)
    return Field(**values)


class FieldTypeTests(SimpleTestCase):
    def test_choice_types_need_options(self) -> None:
        for field_type in ("dropdown", "multipleChoice", "checkboxes"):
            self.assertIn("options", field_types.required_attributes(field_type))
        self.assertEqual(field_types.required_attributes("email"), frozenset({"label", "name"}))

    def test_parse_options(self) -> None:
        self.assertEqual(field_types.parse_options(" a, b ,,c "), ["a", "b", "c"])
        self.assertEqual(field_types.parse_options(["x", " ", "y "]), ["x", "y"])
        self.assertEqual(field_types.parse_options(None), [])
        self.assertEqual(field_types.parse_options(""), [])


class FieldRuleTests(SimpleTestCase):
    def test_valid_field_passes(self) -> None:
        self.assertIsNone(validation.check_field(_rule_field()))

    def test_unknown_type(self) -> None:
        violation = validation.check_field(_rule_field(type="hologram"))
        assert violation is not None
        self.assertEqual(violation.rule, validation.TYPE_UNKNOWN)

    def test_label_required(self) -> None:
        violation = validation.check_field(_rule_field(label="   "), index=2)
        assert violation is not None
        self.assertEqual(violation.rule, validation.LABEL_REQUIRED)
        self.assertEqual(violation.index, 2)
        self.assertTrue(violation.message.startswith("Field 3: "))

    def test_name_rules(self) -> None:
        cases = {
            "": validation.NAME_REQUIRED,
            "1abc": validation.NAME_PATTERN_MISMATCH,
            "has space": validation.NAME_PATTERN_MISMATCH,
            "x" * 65: validation.NAME_TOO_LONG,
        }
        for name, rule in cases.items():
            violation = validation.check_field(_rule_field(name=name))
            assert violation is not None
            self.assertEqual(violation.rule, rule, name)

    def test_dropdown_without_options(self) -> None:
        for options in ([], "", " , ", ["  "]):
            violation = validation.check_field(_rule_field(type="dropdown", options=options))
            assert violation is not None
            self.assertEqual(violation.rule, validation.OPTIONS_REQUIRED)

    def test_dropdown_with_options(self) -> None:
        self.assertIsNone(validation.check_field(_rule_field(type="dropdown", options=["Yes", "No"])))


class FieldSetTests(SimpleTestCase):
    def test_duplicate_names_after_normalization(self) -> None:
        fields = [_rule_field(id="a", name="email"), _rule_field(id="b", name="ｅｍａｉｌ")]
        violation = validation.check_fields(fields)
        assert violation is not None
        self.assertEqual(violation.rule, validation.NAME_DUPLICATE)
        self.assertEqual(violation.index, 1)
        self.assertEqual(violation.field_id, "b")

    def test_per_field_rules_come_first(self) -> None:
        fields = [_rule_field(id="a"), _rule_field(id="b"), _rule_field(id="c", label="")]
        violation = validation.check_fields(fields)
        assert violation is not None
        self.assertEqual(violation.rule, validation.LABEL_REQUIRED)
        self.assertEqual(violation.field_id, "c")

    def test_validate_fields_raises(self) -> None:
        with self.assertRaises(ValidationFailed) as ctx:
            validation.validate_fields([_rule_field(type="checkboxes", options="")])
        error = ctx.exception
        self.assertEqual(error.extra["rule"], validation.OPTIONS_REQUIRED)
        self.assertEqual(error.extra["index"], 0)
        self.assertEqual(error.extra["field"], "f1")

    def test_validate_fields_cleans(self) -> None:
        cleaned = validation.validate_fields(
            [
                _rule_field(id="a", label="  Name ", name=" name\x07 ", options=["stale"]),
                _rule_field(id="b", type="multipleChoice", name="pick", options="red, ,blue"),
            ]
        )
        self.assertEqual(cleaned[0].label, "Name")
        self.assertEqual(cleaned[0].name, "name")
        self.assertEqual(cleaned[0].options, [])
        self.assertEqual(cleaned[1].options, ["red", "blue"])

    def test_empty_set_is_valid(self) -> None:
        self.assertEqual(len(validation.validate_fields([])), 0)

    def test_repeated_field_ids(self) -> None:
        fields = [_rule_field(id="same", name="a"), _rule_field(id="other", name="b"), _rule_field(id="same", name="c")]
        violation = validation.check_fields(fields)
        assert violation is not None
        self.assertEqual(violation.rule, validation.FIELD_ID_DUPLICATE)
        self.assertEqual(violation.index, 2)
        self.assertEqual(violation.field_id, "same")

    def test_missing_ids_are_not_repeats(self) -> None:
        fields = [_rule_field(id="", name="a"), _rule_field(id="", name="b")]
        self.assertIsNone(validation.check_fields(fields))



class TitleTests(SimpleTestCase):
    def test_title_is_normalized(self) -> None:
        self.assertEqual(validation.validate_title("  Ｓｉｇｎｕｐ "), "Signup")

    def test_blank_title(self) -> None:
        with self.assertRaises(ValidationFailed) as ctx:
            validation.validate_title("   ")
        self.assertEqual(ctx.exception.extra["rule"], validation.TITLE_REQUIRED)

    def test_long_title(self) -> None:
        with self.assertRaises(ValidationFailed) as ctx:
            validation.validate_title("t" * 256)
        self.assertEqual(ctx.exception.extra["rule"], validation.TITLE_TOO_LONG)


class SlugTests(SimpleTestCase):
    def test_slugify_title(self) -> None:
        self.assertEqual(ids.slugify_title("Signup"), "signup")
        self.assertEqual(ids.slugify_title("Contact Us!"), "contact-us")
        self.assertEqual(ids.slugify_title("Café déjà vu"), "cafe-deja-vu")
        self.assertEqual(ids.slugify_title("under_score form"), "under-score-form")
        self.assertEqual(ids.slugify_title("!!!"), "form")
        self.assertEqual(ids.slugify_title(""), "form")

    def test_candidate_shape(self) -> None:
        self.assertRegex(ids.candidate_form_id("Signup"), r"^signup-[0-9A-Za-z]{8}$")

    def test_long_titles_are_cut(self) -> None:
        candidate = ids.candidate_form_id("very long title " * 20)
        self.assertLessEqual(len(candidate), 64)
        self.assertRegex(candidate, r"^very-long-title[a-z-]*[a-z]-[0-9A-Za-z]{8}$")

    def test_custom_lengths(self) -> None:
        candidate = ids.candidate_form_id("Signup", suffix_length=4, max_length=9)
        self.assertRegex(candidate, r"^sign-[0-9A-Za-z]{4}$")

    def test_random_suffix(self) -> None:
        suffix = ids.random_suffix(32)
        self.assertEqual(len(suffix), 32)
        self.assertTrue(set(suffix) <= set(ids.SUFFIX_ALPHABET))


class RetryTests(SimpleTestCase):
    def test_succeeds_on_first_free_candidate(self) -> None:
        counter = itertools.count(1)
        probed = []

        def probe(candidate: int) -> bool:
            probed.append(candidate)
            return candidate > 2

        result = ids.retry(lambda: next(counter), probe, 5)
        self.assertEqual(result, ids.Ok(value=3, attempts=3))
        self.assertEqual(probed, [1, 2, 3])

    def test_exhausted(self) -> None:
        probed = []

        def probe(candidate: str) -> bool:
            probed.append(candidate)
            return False

        result = ids.retry(lambda: "taken", probe, 5)
        self.assertEqual(result, ids.Exhausted(attempts=5))
        self.assertEqual(len(probed), 5)


def _field(name: str, field_type: str = "singleLine", **extra) -> Field:
    return Field(type=field_type, label=name.replace("_", " ").title(), name=name, **extra)


class CollidingStore(FormStore):
    """Reports the first ``taken`` id candidates as already used."""

    def __init__(self, taken: int) -> None:
        self.taken = taken
        self.probes = []

    def find_form_by_id(self, form_id: str, for_update: bool = False) -> Optional[Form]:
        if not for_update:
            self.probes.append(form_id)
            if len(self.probes) <= self.taken:
                return Form(id=form_id, title="taken")
        return super().find_form_by_id(form_id, for_update=for_update)


class BlindTitleStore(FormStore):
    """Skips the title pre-check, as a concurrent writer would see it."""

    def find_form_by_title_case_insensitive(self, title, exclude_id=None):
        return None


class RacingFieldStore(FormStore):
    """Writes a field with the same name just before the real insert."""

    def insert_fields(self, form, fields):
        fields = list(fields)
        FormField.objects.create(
            uid="field_racer000", form=form, type="singleLine", label="Racer", name=fields[0].name, position=99
        )
        return super().insert_fields(form, fields)


class BrokenStore(FormStore):
    def insert_fields(self, form, fields):
        raise DatabaseError("disk I/O error")


class BlindIdStore(FormStore):
    """Never sees an existing id, as when another writer inserts it first."""

    def find_form_by_id(self, form_id: str, for_update: bool = False) -> Optional[Form]:
        if not for_update:
            return None
        return super().find_form_by_id(form_id, for_update=for_update)


class RacingFieldIdStore(FormStore):
    """Writes a field with the same id just before the real insert."""

    def insert_fields(self, form, fields):
        fields = list(fields)
        FormField.objects.create(
            uid=fields[0].id, form=form, type="singleLine", label="Racer", name="racer", position=99
        )
        return super().insert_fields(form, fields)


class CreateTests(TestCase):
    def test_id_taken_between_lookup_and_insert(self) -> None:
        Form.objects.create(id="signup-AAAAAAAA", title="Other")
        candidates = ["signup-AAAAAAAA", "signup-BBBBBBBB"]
        with mock.patch("formbuilder.services.candidate_form_id", side_effect=candidates):
            saved = FormCoordinator(store=BlindIdStore()).create("Signup", [_field("email", "email")])

        self.assertEqual(saved.id, "signup-BBBBBBBB")
        self.assertEqual(Form.objects.get(pk="signup-AAAAAAAA").title, "Other")
        self.assertEqual(FormField.objects.get().form_id, "signup-BBBBBBBB")

    def test_id_taken_at_every_insert(self) -> None:
        Form.objects.create(id="signup-AAAAAAAA", title="Other")
        with mock.patch("formbuilder.services.candidate_form_id", return_value="signup-AAAAAAAA") as candidate:
            with self.assertRaises(IdGenerationExhausted):
                FormCoordinator(store=BlindIdStore(), max_attempts=2).create("Signup", [_field("email")])
        self.assertEqual(candidate.call_count, 2)
        self.assertEqual(Form.objects.count(), 1)
        self.assertFalse(FormField.objects.exists())

    def test_repeated_field_ids_rejected(self) -> None:
        fields = [
            Field(id="field_same0000", type="singleLine", label="A", name="a"),
            Field(id="field_same0000", type="singleLine", label="B", name="b"),
        ]
        with self.assertRaises(ValidationFailed) as ctx:
            FormCoordinator().create("Dup ids", fields)
        self.assertEqual(ctx.exception.extra["rule"], "field_id_duplicate")
        self.assertFalse(Form.objects.exists())

    def test_field_id_conflict_at_write_time(self) -> None:
        with self.assertRaises(FieldUniquenessConflict) as ctx:
            FormCoordinator(store=RacingFieldIdStore()).create("Racy ids", [_field("email")])
        self.assertEqual(str(ctx.exception.detail), "Field ids must be unique within a form.")
        self.assertFalse(Form.objects.exists())
        self.assertFalse(FormField.objects.exists())

    def test_create_signup(self) -> None:
        saved = FormCoordinator().create("Signup", [_field("email", "email", required=True)])

        self.assertRegex(saved.id, r"^signup-[0-9A-Za-z]{8}$")
        self.assertEqual(saved.title, "Signup")
        self.assertEqual(len(saved.fields), 1)
        self.assertEqual(saved.fields[0].position, 0)
        self.assertRegex(saved.fields[0].id, r"^field_")

        row = FormField.objects.get(form_id=saved.id)
        self.assertEqual(row.position, 0)
        self.assertEqual(row.name, "email")
        self.assertTrue(row.required)

    def test_positions_follow_list_order(self) -> None:
        saved = FormCoordinator().create("Order", [_field("a"), _field("b"), _field("c")])
        rows = FormField.objects.filter(form_id=saved.id).order_by("position")
        self.assertEqual([row.name for row in rows], ["a", "b", "c"])
        self.assertEqual([row.position for row in rows], [0, 1, 2])

    def test_client_field_ids_are_kept(self) -> None:
        saved = FormCoordinator().create("Ids", [Field(id="field_keepme00", type="number", label="Age", name="age")])
        self.assertEqual(saved.fields[0].id, "field_keepme00")

    def test_id_collisions_are_retried(self) -> None:
        store = CollidingStore(taken=2)
        saved = FormCoordinator(store=store).create("Signup", [])
        self.assertLessEqual(len(store.probes), 3)
        self.assertEqual(store.probes[-1], saved.id)
        self.assertTrue(Form.objects.filter(pk=saved.id).exists())

    def test_id_generation_exhausted(self) -> None:
        store = CollidingStore(taken=100)
        with self.assertRaises(IdGenerationExhausted):
            FormCoordinator(store=store, max_attempts=3).create("Signup", [_field("email")])
        self.assertEqual(len(store.probes), 3)
        self.assertFalse(Form.objects.exists())

    def test_title_conflict_is_case_insensitive(self) -> None:
        coordinator = FormCoordinator()
        coordinator.create("Contact Us", [])
        for title in ("contact us", "CONTACT US", "  Ｃｏｎｔａｃｔ Us "):
            with self.assertRaises(TitleConflict):
                coordinator.create(title, [])
        self.assertEqual(Form.objects.count(), 1)

    def test_title_conflict_at_write_time(self) -> None:
        FormCoordinator().create("Contact Us", [])
        with self.assertRaises(TitleConflict):
            FormCoordinator(store=BlindTitleStore()).create("CONTACT US", [_field("email")])
        self.assertEqual(Form.objects.count(), 1)
        self.assertEqual(FormField.objects.count(), 0)

    def test_field_conflict_at_write_time(self) -> None:
        with self.assertRaises(FieldUniquenessConflict):
            FormCoordinator(store=RacingFieldStore()).create("Racy", [_field("email")])
        self.assertFalse(Form.objects.exists())
        self.assertFalse(FormField.objects.exists())

    def test_storage_failure_rolls_back(self) -> None:
        with self.assertRaises(StorageFailure):
            FormCoordinator(store=BrokenStore()).create("Broken", [_field("email")])
        self.assertFalse(Form.objects.exists())

    def test_validation_happens_before_any_write(self) -> None:
        with self.assertRaises(ValidationFailed) as ctx:
            FormCoordinator().create(
                "Survey", [_field("email", "email"), _field("pick", "dropdown", options="")]
            )
        self.assertEqual(ctx.exception.extra["rule"], "options_required")
        self.assertFalse(Form.objects.exists())
        self.assertFalse(FormField.objects.exists())

    def test_blank_title_rejected(self) -> None:
        with self.assertRaises(ValidationFailed):
            FormCoordinator().create("   ", [])


class TitleUniquenessTests(TestCase):
    def test_is_title_unique(self) -> None:
        coordinator = FormCoordinator()
        saved = coordinator.create("Contact Us", [])

        self.assertFalse(coordinator.is_title_unique("CONTACT US"))
        self.assertTrue(coordinator.is_title_unique("CONTACT US", exclude_id=saved.id))
        self.assertTrue(coordinator.is_title_unique("Feedback"))
        self.assertFalse(coordinator.is_title_unique("   "))


class UpdateTests(TestCase):
    def setUp(self) -> None:
        self.coordinator = FormCoordinator()
        self.saved = self.coordinator.create("Profile", [_field("first"), _field("second")])

    def test_full_replace(self) -> None:
        updated = self.coordinator.update(self.saved.id, fields=[_field("third")])

        rows = list(FormField.objects.filter(form_id=self.saved.id))
        self.assertEqual([row.name for row in rows], ["third"])
        self.assertEqual(rows[0].position, 0)
        self.assertEqual([field.name for field in updated.fields], ["third"])
        self.assertEqual(updated.title, "Profile")

    def test_rename_keeps_fields(self) -> None:
        updated = self.coordinator.update(self.saved.id, title="My Profile")
        self.assertEqual(updated.title, "My Profile")
        self.assertEqual([field.name for field in updated.fields], ["first", "second"])
        self.assertGreaterEqual(updated.updated_at, self.saved.updated_at)

    def test_case_change_of_own_title_is_allowed(self) -> None:
        updated = self.coordinator.update(self.saved.id, title="PROFILE")
        self.assertEqual(updated.title, "PROFILE")

    def test_rename_to_taken_title(self) -> None:
        self.coordinator.create("Survey", [])
        with self.assertRaises(TitleConflict):
            self.coordinator.update(self.saved.id, title="survey", fields=[_field("third")])
        self.assertEqual(Form.objects.get(pk=self.saved.id).title, "Profile")
        self.assertEqual(FormField.objects.filter(form_id=self.saved.id).count(), 2)

    def test_invalid_fields_leave_form_untouched(self) -> None:
        with self.assertRaises(ValidationFailed):
            self.coordinator.update(self.saved.id, title="Renamed", fields=[_field("dup"), _field("dup")])
        self.assertEqual(Form.objects.get(pk=self.saved.id).title, "Profile")
        self.assertEqual(FormField.objects.filter(form_id=self.saved.id).count(), 2)

    def test_missing_form(self) -> None:
        with self.assertRaises(FormNotFound):
            self.coordinator.update("missing-00000000", title="X")

    def test_missing_form_wins_over_validation(self) -> None:
        with self.assertRaises(FormNotFound):
            self.coordinator.update("missing-00000000", title="  ")

    def test_save_dispatches_on_id(self) -> None:
        updated = self.coordinator.save("Profile", [_field("only")], form_id=self.saved.id)
        self.assertEqual(updated.id, self.saved.id)
        created = self.coordinator.save("Other", [])
        self.assertNotEqual(created.id, self.saved.id)
        self.assertEqual(Form.objects.count(), 2)

    def test_delete(self) -> None:
        self.coordinator.delete(self.saved.id)
        self.assertFalse(Form.objects.exists())
        self.assertFalse(FormField.objects.exists())
        with self.assertRaises(FormNotFound):
            self.coordinator.read(self.saved.id)

    def test_list_forms(self) -> None:
        self.coordinator.create("Survey", [_field("rating", "number")])
        listed = {form.title: [field.name for field in form.fields] for form in self.coordinator.list_forms()}
        self.assertEqual(listed, {"Profile": ["first", "second"], "Survey": ["rating"]})


class FieldEditTests(TestCase):
    def setUp(self) -> None:
        self.coordinator = FormCoordinator()
        self.saved = self.coordinator.create(
            "Edit Me", [_field("a"), _field("b"), _field("c"), _field("d")]
        )
        self.ids = [field.id for field in self.saved.fields]

    def _stored_names(self):
        return [field.name for field in self.coordinator.read(self.saved.id).fields]

    def test_move_field(self) -> None:
        updated, moved = self.coordinator.move_field(self.saved.id, 0, 3)
        self.assertTrue(moved)
        self.assertEqual([field.name for field in updated.fields], ["b", "c", "d", "a"])
        self.assertEqual(self._stored_names(), ["b", "c", "d", "a"])
        self.assertEqual([field.id for field in updated.fields][-1], self.ids[0])

    def test_move_noop(self) -> None:
        updated, moved = self.coordinator.move_field(self.saved.id, 2, 2)
        self.assertFalse(moved)
        self.assertEqual(updated.updated_at, self.saved.updated_at)
        self.assertEqual(self._stored_names(), ["a", "b", "c", "d"])

    def test_drop_field(self) -> None:
        updated, moved = self.coordinator.drop_field(self.saved.id, self.ids[2], 4)
        self.assertTrue(moved)
        self.assertEqual(self._stored_names(), ["a", "b", "d", "c"])
        self.assertEqual([field.position for field in updated.fields], [0, 1, 2, 3])

    def test_drop_on_own_edge(self) -> None:
        _, moved = self.coordinator.drop_field(self.saved.id, self.ids[1], 2)
        self.assertFalse(moved)
        self.assertEqual(self._stored_names(), ["a", "b", "c", "d"])

    def test_drop_unknown_field(self) -> None:
        with self.assertRaises(FormNotFound):
            self.coordinator.drop_field(self.saved.id, "field_nothere0", 0)

    def test_duplicate_field(self) -> None:
        updated, copy = self.coordinator.duplicate_field(self.saved.id, self.ids[1])
        self.assertEqual(copy.name, "b1")
        self.assertEqual(copy.position, 2)
        self.assertEqual(self._stored_names(), ["a", "b", "b1", "c", "d"])
        self.assertEqual(len({field.id for field in updated.fields}), 5)

    def test_duplicate_missing_field(self) -> None:
        with self.assertRaises(FormNotFound):
            self.coordinator.duplicate_field(self.saved.id, "field_nothere0")

    def test_duplicate_of_longest_name_can_be_saved_again(self) -> None:
        longest = "n" * field_types.MAX_NAME_LENGTH
        saved = self.coordinator.create("Long names", [_field(longest)])

        _, copy = self.coordinator.duplicate_field(saved.id, saved.fields[0].id)
        self.assertEqual(len(copy.name), field_types.MAX_NAME_LENGTH)

        current = self.coordinator.read(saved.id)
        updated = self.coordinator.update(saved.id, fields=current.fields)
        self.assertEqual(len(updated.fields), 2)


class VersionTests(TestCase):
    def setUp(self) -> None:
        self.coordinator = FormCoordinator()
        self.saved = self.coordinator.create(
            "Profile", [_field("first"), _field("second")], change_description="Initial"
        )

    def test_create_records_first_version(self) -> None:
        version = self.coordinator.versions(self.saved.id).get()
        self.assertEqual(version.number, 1)
        self.assertEqual(version.title, "Profile")
        self.assertEqual(version.change_description, "Initial")
        self.assertEqual([item["name"] for item in version.field_data], ["first", "second"])
        self.assertEqual([item["id"] for item in version.field_data], [field.id for field in self.saved.fields])
        self.assertFalse(version.is_published)

    def test_each_update_adds_a_version(self) -> None:
        self.coordinator.update(self.saved.id, fields=[_field("third")], change_description="Swap fields")
        self.coordinator.update(self.saved.id, title="Account")

        versions = list(self.coordinator.versions(self.saved.id))
        self.assertEqual([version.number for version in versions], [3, 2, 1])
        self.assertEqual(versions[0].title, "Account")
        self.assertEqual([item["name"] for item in versions[0].field_data], ["third"])
        self.assertEqual(versions[1].change_description, "Swap fields")

    def test_rejected_update_adds_no_version(self) -> None:
        with self.assertRaises(ValidationFailed):
            self.coordinator.update(self.saved.id, fields=[_field("dup"), _field("dup")])
        self.assertEqual(FormVersion.objects.filter(form_id=self.saved.id).count(), 1)

    def test_publish_restores_version(self) -> None:
        self.coordinator.update(self.saved.id, title="Account", fields=[_field("third")])

        restored, version = self.coordinator.publish_version(self.saved.id, 1)

        self.assertEqual(version.number, 1)
        self.assertTrue(version.is_published)
        self.assertIsNotNone(version.published_at)
        self.assertEqual(restored.title, "Profile")
        self.assertEqual([field.name for field in restored.fields], ["first", "second"])
        self.assertEqual([field.id for field in restored.fields], [field.id for field in self.saved.fields])
        self.assertEqual(Form.objects.get(pk=self.saved.id).title, "Profile")
        self.assertEqual(
            list(FormField.objects.filter(form_id=self.saved.id).values_list("name", flat=True)),
            ["first", "second"],
        )

    def test_only_one_version_is_published(self) -> None:
        self.coordinator.update(self.saved.id, fields=[_field("third")])
        self.coordinator.publish_version(self.saved.id, 1)
        self.coordinator.publish_version(self.saved.id, 2)

        published = FormVersion.objects.filter(form_id=self.saved.id, is_published=True)
        self.assertEqual([version.number for version in published], [2])
        self.assertIsNone(FormVersion.objects.get(form_id=self.saved.id, number=1).published_at)

    def test_publish_missing_version(self) -> None:
        with self.assertRaises(FormNotFound):
            self.coordinator.publish_version(self.saved.id, 9)
        with self.assertRaises(FormNotFound):
            self.coordinator.publish_version("missing-00000000", 1)

    def test_publish_with_title_taken_since(self) -> None:
        self.coordinator.update(self.saved.id, title="Account", fields=[_field("third")])
        self.coordinator.create("Profile", [])

        with self.assertRaises(TitleConflict):
            self.coordinator.publish_version(self.saved.id, 1)
        self.assertEqual(Form.objects.get(pk=self.saved.id).title, "Account")
        self.assertFalse(FormVersion.objects.filter(form_id=self.saved.id, is_published=True).exists())

    def test_delete_removes_versions(self) -> None:
        self.coordinator.delete(self.saved.id)
        self.assertFalse(FormVersion.objects.exists())



class SubmissionTests(TestCase):
    def setUp(self) -> None:
        self.coordinator = FormCoordinator()
        self.saved = self.coordinator.create(
            "Contact Us", [_field("email", "email"), _field("secret", "password", do_not_store=True)]
        )

    def test_prefix(self) -> None:
        self.assertEqual(submission_prefix("Contact Us"), "CONTACT_US")
        self.assertEqual(submission_prefix("Café 2024!"), "CAF_2024")
        self.assertEqual(submission_prefix("???"), "FORM")

    def test_prepare_submission(self) -> None:
        payload = self.coordinator.prepare_submission(
            self.saved.id, {"email": "a@example.com", "secret": "hunter2", "extra key": 1}
        )
        self.assertEqual(payload, {"CONTACT_US_email": "a@example.com", "CONTACT_US_extra_key": 1})

    def test_record_and_list(self) -> None:
        submission = self.coordinator.record_submission(self.saved.id, {"CONTACT_US_email": "a@example.com"})
        self.assertEqual(FormSubmission.objects.get().pk, submission.pk)
        self.assertEqual([item.pk for item in self.coordinator.submissions(self.saved.id)], [submission.pk])

    def test_record_for_missing_form(self) -> None:
        with self.assertRaises(FormNotFound):
            self.coordinator.record_submission("missing-00000000", {})


def _field_payload(name: str, field_type: str = "singleLine", **extra):
    payload = {"type": field_type, "label": name.title(), "name": name}
    payload.update(extra)
    return payload


class FormApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()

    def _create(self, title: str, fields=None):
        response = self.client.post(
            reverse("form-list"), {"title": title, "fields": fields or []}, format="json"
        )
        self.assertEqual(response.status_code, 201, response.data)
        return response.data

    def test_create_and_fetch_form(self) -> None:
        created = self._create("Signup", [_field_payload("email", "email", required=True)])

        self.assertRegex(created["id"], r"^signup-[0-9A-Za-z]{8}$")
        self.assertEqual(created["fields"][0]["position"], 0)
        self.assertEqual(created["fields"][0]["name"], "email")
        self.assertFalse(created["fields"][0]["doNotStore"])

        detail = self.client.get(reverse("form-detail", args=[created["id"]]))
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.data["title"], "Signup")
        self.assertEqual(detail.data["fields"][0]["id"], created["fields"][0]["id"])

        listing = self.client.get(reverse("form-list"))
        self.assertEqual(listing.status_code, 200)
        self.assertEqual([item["id"] for item in listing.data], [created["id"]])

    def test_options_accept_comma_string(self) -> None:
        created = self._create("Survey", [_field_payload("color", "dropdown", options="Red, ,Blue")])
        self.assertEqual(created["fields"][0]["options"], ["Red", "Blue"])

    def test_invalid_field_rejected(self) -> None:
        response = self.client.post(
            reverse("form-list"),
            {"title": "Survey", "fields": [_field_payload("color", "dropdown", options="")]},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "ValidationFailed")
        self.assertEqual(response.data["rule"], "options_required")
        self.assertEqual(response.data["index"], 0)
        self.assertFalse(Form.objects.exists())
        self.assertFalse(FormField.objects.exists())

    def test_malformed_body_rejected(self) -> None:
        response = self.client.post(reverse("form-list"), {"fields": "nope"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "ValidationFailed")
        self.assertIn("title", response.data)

    def test_duplicate_title_conflicts(self) -> None:
        self._create("Contact Us")
        response = self.client.post(reverse("form-list"), {"title": "CONTACT US"}, format="json")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["error"], "TitleConflict")
        self.assertEqual(response.data["detail"], "Form title already exists. Choose another.")

    def test_check_title(self) -> None:
        created = self._create("Contact Us")
        url = reverse("form-check-title")

        response = self.client.get(url, {"title": "CONTACT US"})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.data["unique"])

        response = self.client.get(url, {"title": "CONTACT US", "excludeId": created["id"]})
        self.assertTrue(response.data["unique"])

        response = self.client.get(url, {"title": "Feedback"})
        self.assertTrue(response.data["unique"])

    def test_save_with_id_replaces_fields(self) -> None:
        created = self._create("Profile", [_field_payload("first"), _field_payload("second")])
        response = self.client.post(
            reverse("form-list"),
            {"id": created["id"], "title": "Profile", "fields": [_field_payload("third")]},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["id"], created["id"])
        self.assertEqual(
            list(FormField.objects.filter(form_id=created["id"]).values_list("name", flat=True)),
            ["third"],
        )

    def test_put_and_patch(self) -> None:
        created = self._create("Profile", [_field_payload("first")])
        url = reverse("form-detail", args=[created["id"]])

        response = self.client.put(url, {"title": "Profile", "fields": [_field_payload("other")]}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([field["name"] for field in response.data["fields"]], ["other"])

        response = self.client.patch(url, {"title": "Renamed"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["title"], "Renamed")
        self.assertEqual([field["name"] for field in response.data["fields"]], ["other"])

    def test_missing_form(self) -> None:
        url = reverse("form-detail", args=["missing-00000000"])
        response = self.client.get(url)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"], "NotFound")

        response = self.client.put(url, {"title": "X"}, format="json")
        self.assertEqual(response.status_code, 404)

        response = self.client.post(
            reverse("form-list"), {"id": "missing-00000000", "title": "X"}, format="json"
        )
        self.assertEqual(response.status_code, 404)

    def test_delete(self) -> None:
        created = self._create("Temp", [_field_payload("a")])
        response = self.client.delete(reverse("form-detail", args=[created["id"]]))
        self.assertEqual(response.status_code, 204)
        self.assertFalse(FormField.objects.exists())

    def test_reorder_by_index(self) -> None:
        created = self._create("Order", [_field_payload("a"), _field_payload("b"), _field_payload("c")])
        url = reverse("form-reorder", args=[created["id"]])

        response = self.client.post(url, {"fromIndex": 0, "toIndex": 2}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["moved"])
        self.assertEqual([field["name"] for field in response.data["fields"]], ["b", "c", "a"])

        response = self.client.post(url, {"fromIndex": 1, "toIndex": 1}, format="json")
        self.assertFalse(response.data["moved"])

    def test_reorder_by_drop(self) -> None:
        created = self._create("Order", [_field_payload("a"), _field_payload("b"), _field_payload("c"), _field_payload("d")])
        field_id = created["fields"][2]["id"]
        response = self.client.post(
            reverse("form-reorder", args=[created["id"]]),
            {"fieldId": field_id, "previewIndex": 4},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual([field["name"] for field in response.data["fields"]], ["a", "b", "d", "c"])

    def test_reorder_needs_one_mode(self) -> None:
        created = self._create("Order", [_field_payload("a")])
        response = self.client.post(reverse("form-reorder", args=[created["id"]]), {}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "ValidationFailed")

    def test_duplicate_field(self) -> None:
        created = self._create("Contact", [_field_payload("email2", "email")])
        response = self.client.post(
            reverse("form-duplicate-field", args=[created["id"], created["fields"][0]["id"]])
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["field"]["name"], "email3")
        self.assertEqual([field["name"] for field in response.data["form"]["fields"]], ["email2", "email3"])

        response = self.client.post(reverse("form-duplicate-field", args=[created["id"], "field_missing0"]))
        self.assertEqual(response.status_code, 404)

    def test_health(self) -> None:
        response = self.client.get(reverse("formbuilder-health"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, {"status": "ok"})

    def test_repeated_field_ids_rejected(self) -> None:
        response = self.client.post(
            reverse("form-list"),
            {
                "title": "Dup ids",
                "fields": [
                    _field_payload("a", id="field_same0000"),
                    _field_payload("b", id="field_same0000"),
                ],
            },
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["rule"], "field_id_duplicate")
        self.assertEqual(response.data["index"], 1)
        self.assertFalse(Form.objects.exists())

    def test_versions_and_publish(self) -> None:
        created = self._create("Profile", [_field_payload("first")])
        url = reverse("form-detail", args=[created["id"]])
        self.client.put(
            url,
            {"title": "Account", "fields": [_field_payload("second")], "changeDescription": "Rename"},
            format="json",
        )

        response = self.client.get(reverse("form-versions", args=[created["id"]]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([item["number"] for item in response.data], [2, 1])
        self.assertEqual(response.data[0]["changeDescription"], "Rename")
        self.assertEqual([field["name"] for field in response.data[1]["fields"]], ["first"])
        self.assertFalse(response.data[1]["isPublished"])

        response = self.client.post(reverse("form-publish-version", args=[created["id"], 1]))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["version"]["isPublished"])
        self.assertEqual(response.data["form"]["title"], "Profile")
        self.assertEqual([field["name"] for field in response.data["form"]["fields"]], ["first"])

        response = self.client.post(reverse("form-publish-version", args=[created["id"], 7]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["detail"], "Version not found.")



class SubmissionApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()
        response = self.client.post(
            reverse("form-list"),
            {
                "title": "Contact Us",
                "fields": [
                    _field_payload("email", "email"),
                    _field_payload("secret", "password", doNotStore=True),
                ],
            },
            format="json",
        )
        self.form_id = response.data["id"]

    def test_submit_with_consent_queues_task(self) -> None:
        with mock.patch("formbuilder.views.record_submission") as task:
            response = self.client.post(
                reverse("form-submit", args=[self.form_id]),
                {"data": {"email": "a@example.com", "secret": "x"}, "storeConsent": True},
                format="json",
            )
        self.assertEqual(response.status_code, 202)
        self.assertTrue(response.data["stored"])
        task.delay.assert_called_once_with(self.form_id, {"CONTACT_US_email": "a@example.com"})

    def test_submit_without_consent_stores_nothing(self) -> None:
        with mock.patch("formbuilder.views.record_submission") as task:
            response = self.client.post(
                reverse("form-submit", args=[self.form_id]),
                {"data": {"email": "a@example.com"}},
                format="json",
            )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.data["stored"])
        task.delay.assert_not_called()

    def test_submit_to_missing_form(self) -> None:
        response = self.client.post(
            reverse("form-submit", args=["missing-00000000"]), {"storeConsent": True}, format="json"
        )
        self.assertEqual(response.status_code, 404)

    def test_list_submissions(self) -> None:
        FormSubmission.objects.create(form_id=self.form_id, payload={"CONTACT_US_email": "a@example.com"})
        response = self.client.get(reverse("form-submissions", args=[self.form_id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["payload"], {"CONTACT_US_email": "a@example.com"})
        self.assertEqual(response.data[0]["form"], self.form_id)


class RecordSubmissionTaskTests(TestCase):
    def setUp(self) -> None:
        self.form = FormCoordinator().create("Contact Us", [])

    @override_settings(SUBMISSION_WEBHOOK_URL="")
    def test_stores_submission(self) -> None:
        submission_id = record_submission(self.form.id, {"CONTACT_US_email": "a@example.com"})
        submission = FormSubmission.objects.get()
        self.assertEqual(str(submission.id), submission_id)
        self.assertEqual(submission.payload, {"CONTACT_US_email": "a@example.com"})

    def test_missing_form_is_dropped(self) -> None:
        self.assertIsNone(record_submission("missing-00000000", {}))
        self.assertFalse(FormSubmission.objects.exists())

    @override_settings(SUBMISSION_WEBHOOK_URL="http://hooks.local/forms", SERVICE_TIMEOUT=2)
    def test_forwards_to_webhook(self) -> None:
        with mock.patch("formbuilder.tasks.requests.post") as post:
            submission_id = record_submission(self.form.id, {"CONTACT_US_email": "a@example.com"})
        post.assert_called_once_with(
            "http://hooks.local/forms",
            json={
                "formId": self.form.id,
                "submissionId": submission_id,
                "payload": {"CONTACT_US_email": "a@example.com"},
            },
            timeout=2,
        )

    @override_settings(SUBMISSION_WEBHOOK_URL="http://hooks.local/forms")
    def test_webhook_failure_keeps_submission(self) -> None:
        with mock.patch("formbuilder.tasks.requests.post", side_effect=requests.ConnectionError("down")):
            self.assertFalse(forward_submission(self.form.id, "abc", {}))
            submission_id = record_submission(self.form.id, {})
        self.assertTrue(FormSubmission.objects.filter(pk=submission_id).exists())

    @override_settings(SUBMISSION_WEBHOOK_URL="")
    def test_no_webhook_configured(self) -> None:
        with mock.patch("formbuilder.tasks.requests.post") as post:
            self.assertFalse(forward_submission(self.form.id, "abc", {}))
        post.assert_not_called()
