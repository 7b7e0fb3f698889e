"""Tests for the typed confirmation guard."""

import pytest

from conftest import VERBOSE_LISTING
from wsl_manager import MenuState, confirm_destructive, uninstall_flow


class TestConfirmDestructive:
    def test_exact_phrase_confirms(self, session, ask):
        ask.answers = ["DELETE"]
        assert confirm_destructive(session, "DELETE", "gone forever")

    @pytest.mark.parametrize("answer", ["delete", "DELETE ", " DELETE", "DELETEX", "", "cancel"])
    def test_anything_else_cancels(self, session, ask, answer):
        ask.answers = [answer]
        assert not confirm_destructive(session, "DELETE", "gone forever")

    def test_multi_word_phrase_is_case_sensitive(self, session, ask):
        ask.answers = ["remove wsl completely"]
        assert not confirm_destructive(session, "REMOVE WSL COMPLETELY", "everything")


class TestUninstallConfirmation:
    @pytest.mark.parametrize("answer", ["delete", "DELETE ", "DELETEX", "cancel"])
    def test_mismatch_makes_no_unregister_call(self, session, runner, ask, answer):
        runner.on("wsl.exe", "--list", "--verbose", stdout=VERBOSE_LISTING)
        ask.answers = ["2", answer]
        assert uninstall_flow(session) == MenuState.MENU
        assert not runner.called("wsl.exe", "--unregister")
        assert not runner.called("wsl.exe", "--terminate")

    def test_exact_phrase_unregisters(self, session, runner, ask):
        runner.on("wsl.exe", "--list", "--verbose", stdout=VERBOSE_LISTING)
        ask.answers = ["2", "DELETE"]
        assert uninstall_flow(session) == MenuState.MENU
        assert runner.called("wsl.exe", "--unregister") == [["wsl.exe", "--unregister", "Debian"]]
        assert runner.index_of("wsl.exe", "--terminate") < runner.index_of("wsl.exe", "--unregister")

    def test_quit_from_selection_exits(self, session, runner, ask):
        runner.on("wsl.exe", "--list", "--verbose", stdout=VERBOSE_LISTING)
        ask.answers = ["q"]
        assert uninstall_flow(session) == MenuState.EXIT

    def test_preselected_distribution_skips_selection_prompt(self, session, runner, ask):
        runner.on("wsl.exe", "--list", "--verbose", stdout=VERBOSE_LISTING)
        session.distribution = "kali-linux"
        ask.answers = ["DELETE"]
        uninstall_flow(session)
        assert runner.called("wsl.exe", "--unregister") == [["wsl.exe", "--unregister", "kali-linux"]]
        assert session.distribution is None
