"""Tests for system prompt assembly and the guide catalog."""

from prompts.agent_system_prompt import build_system_prompt, build_welcome_message
from prompts.guides import (
    GUIDE_CONTEXT_PREFIX,
    build_guide_context,
    get_guide,
    is_guide_context,
    search_guides,
)


class TestSystemPrompt:
    def test_without_storage(self):
        prompt = build_system_prompt(False, False)
        assert prompt.startswith("You are ApertureAI")
        assert "USE YOUR TOOLS" not in prompt
        assert "drive" not in prompt.lower()

    def test_drive_with_root_folder(self):
        prompt = build_system_prompt(True, False, drive_folder_id="FOLDER42")
        assert "The root folder ID is FOLDER42" in prompt
        assert "USE YOUR TOOLS" in prompt
        assert "full URL" in prompt
        assert "OneDrive" not in prompt

    def test_drive_without_root_folder(self):
        prompt = build_system_prompt(True, False)
        assert "list_drive_files with no folder_id" in prompt

    def test_onedrive_only(self):
        prompt = build_system_prompt(False, True)
        assert "list_onedrive_files" in prompt
        assert "driveId" in prompt
        assert "Google Drive" not in prompt

    def test_single_line(self):
        assert "\n" not in build_system_prompt(True, True, "F")


class TestWelcomeMessage:
    def test_both_sources(self):
        assert "Google Drive and OneDrive" in build_welcome_message(True, True)

    def test_none_configured(self):
        assert "not configured" in build_welcome_message(False, False)


class TestGuides:
    def test_get_guide(self):
        assert get_guide("factory_reset_windows_pc")["title"] == "Factory resetting your PC"
        assert get_guide("nope") is None
        assert get_guide(None) is None

    def test_search_guides(self):
        assert len(search_guides()) == 1
        assert [g["id"] for g in search_guides("RESET")] == ["factory_reset_windows_pc"]
        assert search_guides("printer") == []

    def test_guide_context(self):
        context = build_guide_context(get_guide("factory_reset_windows_pc"))
        assert context.startswith(GUIDE_CONTEXT_PREFIX + "\n")
        assert is_guide_context(context)
        assert not is_guide_context("You are ApertureAI")
        assert not is_guide_context(None)
