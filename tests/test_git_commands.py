"""
Tests for the git command builder.

Command lines are pure data, so these tests need no git executable.
"""

from pathlib import Path

from gitpack.core.git import commands
from gitpack.core.git.commands import Command

PREFIX = ["git", "-c", "gc.auto=0"]


class TestClone:
    def test_remote_source_uses_blob_filter(self):
        argv = commands.clone("https://example.com/user/plugin", Path("/pkgs/plugin"))

        assert argv[:3] == PREFIX
        assert argv[3:5] == ["clone", "--quiet"]
        assert "--filter=blob:none" in argv
        assert "--recurse-submodules" in argv
        assert "--also-filter-submodules" in argv
        assert argv[-4:] == ["--origin", "origin", "https://example.com/user/plugin", "/pkgs/plugin"]

    def test_file_source_uses_no_hardlinks(self):
        argv = commands.clone("file:///srv/plugin.git", "/pkgs/plugin")

        assert "--no-hardlinks" in argv
        assert "--filter=blob:none" not in argv


class TestCommands:
    def test_every_command_disables_auto_gc(self):
        builders = [
            commands.fetch(),
            commands.stash("2024-01-01 00:00:00"),
            commands.checkout("abc1234"),
            commands.get_origin(),
            commands.get_default_origin_branch(),
            commands.get_hash("HEAD"),
            commands.log("a", "b"),
            commands.list_branches(),
            commands.list_tags(),
            commands.list_new_tags("abc"),
            commands.list_current_tags("abc"),
        ]
        for argv in builders:
            assert argv[:3] == PREFIX

    def test_stash_message_has_timestamp(self):
        argv = commands.stash("2024-05-06 07:08:09")

        assert argv[-1] == "(gitpack) 2024-05-06 07:08:09 Stash before checkout"

    def test_fetch_forces_tags(self):
        argv = commands.fetch()

        assert "--tags" in argv
        assert "--force" in argv
        assert argv[-1] == "origin"

    def test_get_hash_uses_rev_list(self):
        assert commands.get_hash("v1.0.0")[3:] == ["rev-list", "-1", "--abbrev-commit", "v1.0.0"]

    def test_log_range_and_format(self):
        argv = commands.log("abc", "def")

        assert argv[-1] == "abc...def"
        assert "--topo-order" in argv
        assert "--decorate-refs=refs/tags" in argv
        assert "--pretty=format:%m %h │ %s%d" in argv

    def test_tag_listings(self):
        assert "--sort=-v:refname" in commands.list_tags()
        assert commands.list_new_tags("abc")[-2:] == ["--contains", "abc"]
        assert commands.list_current_tags("abc")[-2:] == ["--points-at", "abc"]


class TestCommand:
    def test_str_joins_argv(self):
        command = Command(["git", "status"], cwd=Path("/tmp"), label="status")

        assert str(command) == "git status"
        assert command.label == "status"
