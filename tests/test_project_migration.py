"""
Unit tests for loading persisted projects of older shapes.
"""
import sys
import os
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from schemas import Character, ProjectMeta, StoryboardRow, RowStatus
from agents.project_migration import migrate_project, migrate_roster, serialize_project
from utils.errors import ProjectLoadError


def _legacy_row(**fields):
    row = {"id": 1, "originalRow": ["lan1", "Hi", "Chào", "", "market"]}
    row.update(fields)
    return row


class TestLegacyRows:

    def test_single_asset_becomes_list(self):
        _, _, rows = migrate_project({"tableData": [_legacy_row(generatedImage="x")]}, 3)
        assert rows[0].generated_images == ["x"]
        assert rows[0].main_image_index == 0

    def test_missing_main_index_points_at_last_asset(self):
        _, _, rows = migrate_project({"tableData": [_legacy_row(generatedImages=["a", "b"])]}, 3)
        assert rows[0].main_image_index == 1

    def test_no_assets(self):
        _, _, rows = migrate_project({"tableData": [_legacy_row()]}, 3)
        assert rows[0].generated_images == []
        assert rows[0].main_image_index == -1

    def test_out_of_range_main_index_is_clamped(self):
        payload = {"tableData": [_legacy_row(generatedImages=["a", "b"], mainImageIndex=5)]}
        _, _, rows = migrate_project(payload, 3)
        assert rows[0].main_image_index == 1

    def test_single_character_index(self):
        payload = {"tableData": [
            _legacy_row(id=1, selectedCharacterIndex=-1),
            _legacy_row(id=2, selectedCharacterIndex=2),
            _legacy_row(id=3, selectedCharacterIndex=-2),
            _legacy_row(id=4, selectedCharacterIndex="bad"),
        ]}
        _, _, rows = migrate_project(payload, 3)
        assert [r.selected_character_indices for r in rows] == [[], [2], [-2], []]

    def test_plural_indices_win(self):
        row = _legacy_row(selectedCharacterIndices=[0, 2, 2], selectedCharacterIndex=1)
        _, _, rows = migrate_project({"tableData": [row]}, 3)
        assert rows[0].selected_character_indices == [0, 2]

    def test_context_prompt_defaults_to_source_column(self):
        _, _, rows = migrate_project({"tableData": [_legacy_row()]}, 3)
        assert rows[0].context_prompt == "market"

    def test_missing_and_duplicate_ids(self):
        payload = {"tableData": [
            {"originalRow": ["a"]},
            _legacy_row(id=1),
            "not a row",
        ]}
        _, _, rows = migrate_project(payload, 3)
        assert [r.id for r in rows] == [1, 2]

    def test_loaded_rows_are_idle(self):
        _, _, rows = migrate_project({"tableData": [_legacy_row(status="generating_asset")]}, 3)
        assert rows[0].status == RowStatus.IDLE


class TestProjectShape:

    def test_roster_padding_and_truncation(self):
        assert len(migrate_roster([{"name": "Lan"}], 3)) == 3
        assert migrate_roster([{"name": "Lan"}], 3)[2] == Character()
        assert [c.name for c in migrate_roster([{"name": str(i)} for i in range(5)], 3)] == ["0", "1", "2"]

    def test_character_fields(self):
        roster = migrate_roster([{"name": "Lan", "images": ["img", 3], "stylePrompt": "red"}], 3)
        assert roster[0] == Character(name="Lan", images=["img"], style_prompt="red")

    def test_wrapped_payload(self):
        meta, _, rows = migrate_project({"project": {"projectName": "Demo", "tableData": [_legacy_row()]}}, 3)
        assert meta.project_name == "Demo"
        assert len(rows) == 1

    def test_not_an_object(self):
        with pytest.raises(ProjectLoadError):
            migrate_project(["tableData"], 3)

    def test_empty_object_loads_empty_project(self):
        meta, roster, rows = migrate_project({}, 3)
        assert meta == ProjectMeta()
        assert len(roster) == 3
        assert rows == []


class TestSerializeProject:

    def test_camel_case_without_status(self):
        meta = ProjectMeta(project_name="Demo", selected_style_prompt="ink", video_prompt_note="calm")
        row = StoryboardRow(id=4, original_row=["lan4"], generated_images=["a"], main_image_index=0,
                            status=RowStatus.GENERATING_PROMPT, video_prompt="pan")
        payload = serialize_project(meta, [Character(name="Lan")], [row])

        assert payload["projectName"] == "Demo"
        assert payload["selectedStylePrompt"] == "ink"
        assert payload["characters"][0]["stylePrompt"] == ""
        saved = payload["tableData"][0]
        assert "status" not in saved
        assert saved["generatedImages"] == ["a"]
        assert saved["mainImageIndex"] == 0
        assert saved["videoPrompt"] == "pan"

    def test_saved_project_loads_back(self):
        meta = ProjectMeta(project_name="Demo")
        rows = [StoryboardRow(id=2, original_row=["lan2", "", "x"], selected_character_indices=[0],
                              generated_images=["a", "b"], main_image_index=0, error="late",
                              last_used_prompt="p")]
        roster = [Character(name="Lan"), Character(), Character()]
        loaded_meta, loaded_roster, loaded_rows = migrate_project(serialize_project(meta, roster, rows), 3)
        assert loaded_meta == meta
        assert loaded_roster == roster
        assert loaded_rows == rows
