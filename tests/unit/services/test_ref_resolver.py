"""
Unit tests for git reference resolution.

Covers repository discovery, symbolic HEAD parsing, detached HEAD
resolution through packed-refs and loose refs, and read retries.
"""

from pathlib import Path
from unittest.mock import patch

from headwatch.services.ref_resolver import (
    find_repository_root,
    parse_packed_refs,
    pick_packed_ref,
    read_git_file,
    resolve_display_name,
)

MAIN_HASH = "a" * 40
FEATURE_HASH = "b" * 40
UNKNOWN_HASH = "0123456789abcdef0123456789abcdef01234567"


class TestFindRepositoryRoot:
    """Tests for walking up to the .git directory."""

    def test_finds_git_dir_in_start_directory(self, git_repo):
        assert find_repository_root(git_repo.work_tree) == git_repo.git_dir

    def test_finds_git_dir_from_nested_directory(self, git_repo):
        nested = git_repo.work_tree / "src" / "deep" / "package"
        nested.mkdir(parents=True)

        assert find_repository_root(nested) == git_repo.git_dir

    def test_accepts_string_path(self, git_repo):
        assert find_repository_root(str(git_repo.work_tree)) == git_repo.git_dir

    def test_returns_none_without_git_directory(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()

        with patch("pathlib.Path.is_file", return_value=False):
            assert find_repository_root(plain) is None

    def test_git_dir_without_head_is_ignored(self, tmp_path):
        work_tree = tmp_path / "broken"
        (work_tree / ".git").mkdir(parents=True)

        with patch.object(Path, "parents", new=[]):
            assert find_repository_root(work_tree) is None

    def test_empty_input_returns_none_without_filesystem_access(self):
        with patch("pathlib.Path.is_dir") as mock_is_dir:
            assert find_repository_root("") is None
            assert find_repository_root(None) is None

        mock_is_dir.assert_not_called()

    def test_missing_start_directory_returns_none(self, tmp_path):
        assert find_repository_root(tmp_path / "does-not-exist") is None


class TestReadGitFile:
    """Tests for the retrying reader."""

    def test_returns_trimmed_content(self, tmp_path):
        ref_file = tmp_path / "HEAD"
        ref_file.write_text("  ref: refs/heads/main \n\n")

        assert read_git_file(ref_file) == "ref: refs/heads/main"

    def test_retries_until_read_succeeds(self, tmp_path):
        ref_file = tmp_path / "HEAD"
        ref_file.write_text("ref: refs/heads/main\n")
        real_read_text = Path.read_text
        attempts = []

        def flaky_read_text(self, *args, **kwargs):
            attempts.append(self)
            if len(attempts) < 3:
                raise PermissionError("locked by git")
            return real_read_text(self, *args, **kwargs)

        with patch.object(Path, "read_text", flaky_read_text), patch(
            "headwatch.services.ref_resolver.time.sleep"
        ) as mock_sleep:
            assert read_git_file(ref_file) == "ref: refs/heads/main"

        assert len(attempts) == 3
        assert mock_sleep.call_count == 2

    def test_returns_none_after_five_failed_attempts(self, tmp_path):
        with patch.object(
            Path, "read_text", side_effect=PermissionError("locked")
        ) as mock_read, patch(
            "headwatch.services.ref_resolver.time.sleep"
        ) as mock_sleep:
            assert read_git_file(tmp_path / "HEAD") is None

        assert mock_read.call_count == 5
        # no pause after the final attempt
        assert mock_sleep.call_count == 4
        mock_sleep.assert_called_with(0.01)


class TestParsePackedRefs:
    """Tests for the packed-refs line filter."""

    def test_skips_comments_peeled_lines_and_blank_lines(self):
        content = "\n".join(
            [
                "# pack-refs with: peeled fully-peeled sorted ",
                f"{MAIN_HASH} refs/heads/main",
                f"^{FEATURE_HASH}",
                "",
                "   ",
                f"{FEATURE_HASH} refs/tags/v1.0",
            ]
        )

        assert list(parse_packed_refs(content)) == [
            (MAIN_HASH, "refs/heads/main"),
            (FEATURE_HASH, "refs/tags/v1.0"),
        ]

    def test_skips_short_and_malformed_lines(self):
        content = "\n".join(
            [
                f"{MAIN_HASH} x",  # too short to hold a ref name
                MAIN_HASH + "refs/heads/no-space-here",
                "garbage",
            ]
        )

        assert list(parse_packed_refs(content)) == []

    def test_splits_on_first_space_only(self):
        content = f"{MAIN_HASH} refs/heads/odd name"

        assert list(parse_packed_refs(content)) == [(MAIN_HASH, "refs/heads/odd name")]


class TestPickPackedRef:
    """Tests for the preference order among refs pointing at one commit."""

    def test_local_head_beats_remote_and_tag(self):
        candidates = ["refs/tags/v1", "refs/remotes/origin/main", "refs/heads/main"]

        assert pick_packed_ref(candidates) == "refs/heads/main"

    def test_remote_beats_tag(self):
        assert pick_packed_ref(["refs/tags/v1", "refs/remotes/o/x"]) == "refs/remotes/o/x"

    def test_tag_beats_other_namespaces(self):
        assert pick_packed_ref(["refs/notes/x", "refs/tags/release"]) == "refs/tags/release"

    def test_shortest_wins_within_namespace(self):
        candidates = ["refs/heads/feature/long-name", "refs/heads/dev"]

        assert pick_packed_ref(candidates) == "refs/heads/dev"

    def test_first_encountered_wins_on_full_tie(self):
        candidates = ["refs/tags/bbb", "refs/tags/aaa"]

        assert pick_packed_ref(candidates) == "refs/tags/bbb"


class TestResolveDisplayName:
    """Tests for turning HEAD into a display name."""

    def test_symbolic_local_branch(self, git_repo):
        git_repo.checkout_branch("feature/login")

        assert resolve_display_name(git_repo.git_dir) == "feature/login"

    def test_symbolic_remote_branch(self, git_repo):
        git_repo.set_head("ref: refs/remotes/origin/main\n")

        assert resolve_display_name(git_repo.git_dir) == "origin/main"

    def test_symbolic_other_namespace_keeps_namespace(self, git_repo):
        git_repo.set_head("ref: refs/tags/v2.0\n")

        assert resolve_display_name(git_repo.git_dir) == "tags/v2.0"

    def test_unknown_hash_is_shortened(self, git_repo):
        git_repo.detach(UNKNOWN_HASH)

        assert resolve_display_name(git_repo.git_dir) == "(0123456789...)"

    def test_non_hash_content_is_shortened(self, git_repo):
        git_repo.set_head("abc\n")

        assert resolve_display_name(git_repo.git_dir) == "(abc...)"

    def test_packed_local_head_wins_over_tag(self, git_repo):
        git_repo.detach(MAIN_HASH).write_packed_refs(
            f"{MAIN_HASH} refs/tags/v1",
            f"{MAIN_HASH} refs/heads/main",
        )

        assert resolve_display_name(git_repo.git_dir) == "main"

    def test_packed_remote_is_bracketed_without_remotes_prefix(self, git_repo):
        git_repo.detach(MAIN_HASH).write_packed_refs(
            f"{MAIN_HASH} refs/remotes/origin/release",
            f"{MAIN_HASH} refs/tags/v1",
        )

        assert resolve_display_name(git_repo.git_dir) == "(origin/release)"

    def test_packed_tag_is_bracketed(self, git_repo):
        git_repo.detach(MAIN_HASH).write_packed_refs(f"{MAIN_HASH} refs/tags/v1.2.3")

        assert resolve_display_name(git_repo.git_dir) == "(tags/v1.2.3)"

    def test_packed_peeled_line_does_not_match(self, git_repo):
        git_repo.detach(MAIN_HASH).write_packed_refs(
            f"{FEATURE_HASH} refs/tags/annotated",
            f"^{MAIN_HASH}",
        )

        assert resolve_display_name(git_repo.git_dir) == "(aaaaaaaaaa...)"

    def test_loose_remote_ref(self, git_repo):
        git_repo.detach(FEATURE_HASH).add_loose_ref(
            "refs/remotes/origin/feature", FEATURE_HASH
        )

        assert resolve_display_name(git_repo.git_dir) == "(origin/feature)"

    def test_loose_local_head_is_bracketed(self, git_repo):
        git_repo.detach(FEATURE_HASH).add_loose_ref("refs/heads/topic", FEATURE_HASH)

        assert resolve_display_name(git_repo.git_dir) == "(topic)"

    def test_loose_tag_keeps_tags_prefix(self, git_repo):
        git_repo.detach(FEATURE_HASH).add_loose_ref("refs/tags/v3", FEATURE_HASH)

        assert resolve_display_name(git_repo.git_dir) == "(tags/v3)"

    def test_loose_ref_match_is_case_insensitive(self, git_repo):
        upper_hash = "ABCDEF" + "1" * 34
        git_repo.detach(upper_hash.lower()).add_loose_ref("refs/heads/topic", upper_hash)

        assert resolve_display_name(git_repo.git_dir) == "(topic)"

    def test_loose_refs_used_when_packed_refs_has_no_match(self, git_repo):
        git_repo.detach(FEATURE_HASH).write_packed_refs(
            f"{MAIN_HASH} refs/heads/main"
        ).add_loose_ref("refs/remotes/upstream/fix", FEATURE_HASH)

        assert resolve_display_name(git_repo.git_dir) == "(upstream/fix)"

    def test_packed_refs_take_precedence_over_loose_refs(self, git_repo):
        git_repo.detach(MAIN_HASH).write_packed_refs(
            f"{MAIN_HASH} refs/heads/main"
        ).add_loose_ref("refs/tags/loose", MAIN_HASH)

        assert resolve_display_name(git_repo.git_dir) == "main"

    def test_unreadable_head_returns_none(self, git_repo):
        with patch(
            "headwatch.services.ref_resolver.read_git_file", return_value=None
        ):
            assert resolve_display_name(git_repo.git_dir) is None

    def test_resolution_is_idempotent(self, git_repo):
        git_repo.detach(MAIN_HASH).write_packed_refs(
            f"{MAIN_HASH} refs/remotes/origin/main"
        )

        first = resolve_display_name(git_repo.git_dir)
        second = resolve_display_name(git_repo.git_dir)

        assert first == second == "(origin/main)"
