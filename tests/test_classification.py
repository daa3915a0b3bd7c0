"""
Tests for applying mapping rules to stored entries, and for the manual
entry and rule administration services.
"""
import pytest

from app.core.errors import (
    InactiveTargetError,
    InvalidEntryStatusError,
    InvalidRulePatternError,
    ProjectNotFoundError,
    RuleNotFoundError,
    TaskNotFoundError,
)
from app.models.entry import EntryStatus
from app.models.import_source import SourceType
from app.models.rule import MatchOperator
from app.services import classification, entries, rules
from app.services.rules import RuleInput


class TestApplyAllPending:
    def test_maps_pending_entries(self, db, make_source, make_entry, make_target, make_rule):
        source = make_source()
        project, task = make_target()
        rule = make_rule(project, task)
        hit = make_entry(source, project_key="ACME")
        miss = make_entry(source, project_key="OTHER")

        assert classification.apply_all_pending(db) == 1
        db.refresh(hit)
        db.refresh(miss)
        assert hit.status == EntryStatus.mapped
        assert (hit.mapping_rule_id, hit.timelog_project_id, hit.timelog_task_id) == (rule.id, project.id, task.id)
        assert miss.status == EntryStatus.pending
        assert miss.timelog_project_id is None

    def test_priority_decides(self, db, make_source, make_entry, make_target, make_rule):
        source = make_source()
        project_a, _ = make_target()
        project_b, _ = make_target()
        make_rule(project_a, priority=20, name="late")
        early = make_rule(project_b, priority=5, name="early")
        entry = make_entry(source, project_key="ACME")
        classification.apply_all_pending(db)
        db.refresh(entry)
        assert entry.mapping_rule_id == early.id
        assert entry.timelog_project_id == project_b.id

    def test_non_pending_entries_untouched(self, db, make_source, make_entry, make_target, make_rule):
        source = make_source()
        project, task = make_target()
        make_rule(project, task)
        untouched = [
            make_entry(source, status=status, project_key="ACME")
            for status in (EntryStatus.failed, EntryStatus.submitted, EntryStatus.ignored)
        ]
        assert classification.apply_all_pending(db) == 0
        for entry in untouched:
            db.refresh(entry)
            assert entry.timelog_project_id is None

    def test_no_rules(self, db, make_source, make_entry):
        make_entry(make_source(), project_key="ACME")
        assert classification.apply_all_pending(db) == 0

    def test_upload_scoped_rule(self, db, make_source, make_entry, make_target, make_rule):
        tempo = make_source(name="Tempo")
        uploads = make_source(name="Uploads", source_type=SourceType.upload)
        project, _ = make_target()
        make_rule(project, source_type=SourceType.upload)
        from_tempo = make_entry(tempo, project_key="ACME")
        from_upload = make_entry(uploads, project_key="ACME")
        classification.apply_all_pending(db)
        db.refresh(from_tempo)
        db.refresh(from_upload)
        assert from_tempo.status == EntryStatus.pending
        assert from_upload.status == EntryStatus.mapped


class TestPreviewAndApplyRule:
    def test_preview_writes_nothing(self, db, make_source, make_entry, make_target, make_rule):
        source = make_source()
        project, _ = make_target()
        rule = make_rule(project, is_enabled=False)
        pending = make_entry(source, project_key="ACME")
        failed = make_entry(source, status=EntryStatus.failed, project_key="ACME")
        make_entry(source, status=EntryStatus.submitted, project_key="ACME")

        matched = classification.preview_rule(db, rule.id)
        assert {e.id for e in matched} == {pending.id, failed.id}
        db.refresh(pending)
        assert pending.status == EntryStatus.pending

    def test_apply_single_rule(self, db, make_source, make_entry, make_target, make_rule):
        source = make_source()
        project, _ = make_target()
        rule = make_rule(project, match_field="description", match_operator=MatchOperator.contains,
                         match_value="review")
        entry = make_entry(source, description="Code REVIEW")
        assert classification.apply_rule(db, rule.id) == 1
        db.refresh(entry)
        assert entry.status == EntryStatus.mapped

    def test_unknown_rule(self, db):
        with pytest.raises(RuleNotFoundError):
            classification.preview_rule(db, 42)
        with pytest.raises(RuleNotFoundError):
            classification.apply_rule(db, 42)


class TestEntryActions:
    def test_ignore_pending_only(self, db, make_source, make_entry):
        source = make_source()
        entry = make_entry(source)
        assert entries.ignore_entry(db, entry.id).status == EntryStatus.ignored
        with pytest.raises(InvalidEntryStatusError):
            entries.ignore_entry(db, entry.id)

    def test_manual_map(self, db, make_source, make_entry, make_target):
        entry = make_entry(make_source())
        project, task = make_target()
        mapped = entries.manual_map(db, entry.id, project.id, task.id)
        assert mapped.status == EntryStatus.mapped
        assert mapped.mapping_rule_id is None
        assert (mapped.timelog_project_id, mapped.timelog_task_id) == (project.id, task.id)

    def test_manual_map_validates_target(self, db, make_source, make_entry, make_target):
        entry = make_entry(make_source())
        project, task = make_target()
        other_project, other_task = make_target()
        retired, _ = make_target(project_active=False)
        _, retired_task = make_target(task_active=False)

        with pytest.raises(ProjectNotFoundError):
            entries.manual_map(db, entry.id, 999, None)
        with pytest.raises(TaskNotFoundError):
            entries.manual_map(db, entry.id, project.id, other_task.id)
        with pytest.raises(InactiveTargetError):
            entries.manual_map(db, entry.id, retired.id, None)
        with pytest.raises(InactiveTargetError):
            entries.manual_map(db, entry.id, retired_task.timelog_project_id, retired_task.id)

    def test_list_unmapped(self, db, make_source, make_entry):
        source = make_source()
        pending = make_entry(source)
        failed = make_entry(source, status=EntryStatus.failed)
        make_entry(source, status=EntryStatus.mapped)
        assert {e.id for e in entries.list_unmapped(db)} == {pending.id, failed.id}


class TestRuleAdmin:
    def _input(self, project, task=None, **kwargs):
        values = dict(
            name="ACME work",
            match_field="project_key",
            match_operator=MatchOperator.equals,
            match_value="ACME",
            timelog_project_id=project.id,
            timelog_task_id=task.id if task else None,
        )
        values.update(kwargs)
        return RuleInput(**values)

    def test_create_update_delete(self, db, make_target):
        project, task = make_target()
        rule = rules.create_rule(db, self._input(project, task, priority=3))
        assert rule.is_enabled
        updated = rules.update_rule(db, rule.id, self._input(project, None, match_value="ACME2"))
        assert updated.match_value == "ACME2"
        assert updated.timelog_task_id is None
        rules.delete_rule(db, rule.id)
        with pytest.raises(RuleNotFoundError):
            rules.delete_rule(db, rule.id)

    def test_invalid_regex_rejected(self, db, make_target):
        project, _ = make_target()
        with pytest.raises(InvalidRulePatternError):
            rules.create_rule(db, self._input(project, match_operator=MatchOperator.regex, match_value="(oops"))

    def test_inactive_target_rejected(self, db, make_target):
        project, _ = make_target(project_active=False)
        with pytest.raises(InactiveTargetError):
            rules.create_rule(db, self._input(project))

    def test_set_enabled(self, db, make_target, make_rule):
        project, _ = make_target()
        rule = make_rule(project)
        assert rules.set_enabled(db, rule.id, False).is_enabled is False

    def test_move_priority(self, db, make_target, make_rule):
        project, _ = make_target()
        first = make_rule(project, priority=1, name="first")
        second = make_rule(project, priority=2, name="second")
        ordered = rules.move_priority(db, second.id, -1)
        assert [r.name for r in ordered] == ["second", "first"]
        # Already at the top: nothing changes.
        ordered = rules.move_priority(db, second.id, -1)
        assert [r.name for r in ordered] == ["second", "first"]
        assert first.id != second.id

    def test_move_equal_priorities(self, db, make_target, make_rule):
        project, _ = make_target()
        make_rule(project, priority=0, name="a")
        b = make_rule(project, priority=0, name="b")
        assert [r.name for r in rules.move_priority(db, b.id, -1)] == ["b", "a"]

    def test_move_within_a_run_of_ties_moves_one_step(self, db, make_target, make_rule):
        project, _ = make_target()
        make_rule(project, priority=5, name="a")
        make_rule(project, priority=5, name="b")
        c = make_rule(project, priority=5, name="c")
        d = make_rule(project, priority=9, name="d")
        ordered = rules.move_priority(db, c.id, -1)
        assert [r.name for r in ordered] == ["a", "c", "b", "d"]
        ordered = rules.move_priority(db, c.id, -1)
        assert [r.name for r in ordered] == ["c", "a", "b", "d"]
        priorities = [r.priority for r in ordered]
        assert priorities == sorted(set(priorities))
        assert d.priority == 9

    def test_move_unknown(self, db):
        with pytest.raises(RuleNotFoundError):
            rules.move_priority(db, 404, 1)
