"""Tests for help text generation."""

from apexctl.services.help import build_help, group_commands


class TestGroupCommands:
    def test_groups_by_prefix(self) -> None:
        groups = group_commands(
            {
                "git:status": "m:A",
                "git:commit": "m:B",
                "ci:status": "m:C",
                "build": "m:D",
                "help": None,
            }
        )
        assert groups == {
            "CI": ["ci:status"],
            "Core": ["build"],
            "Git": ["git:commit", "git:status"],
        }

    def test_unknown_prefix_is_capitalized(self) -> None:
        assert group_commands({"docs:build": "m:A"}) == {"Docs": ["docs:build"]}


class TestBuildHelp:
    def test_message_sections(self) -> None:
        result = build_help({"git:status": "m:A"}, {"start-day": ("git:pull", "git:status")})
        message = result["message"]
        assert result["success"] is True
        assert "Built-in:" in message
        assert "Git:" in message
        assert "start-day" in message
        assert "git:pull -> git:status" in message
        assert '"fix de ci"' in message

    def test_no_recipes_section_when_empty(self) -> None:
        result = build_help({}, {})
        assert "Recipes:" not in result["message"]
        assert result["data"] == {"commands": {}, "recipes": {}}

    def test_banner_is_ascii(self) -> None:
        message = build_help({}, {})["message"]
        assert message.splitlines()[0] == "Apex: developer automation hub"
        assert message.isascii()
