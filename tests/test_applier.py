# tests/test_applier.py
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from chatedit.core.applier import ChangeApplicator, apply_edits
from chatedit.core.extractor import parse_response
from chatedit.core.models import ErrorKind, FileEdit
from chatedit.core.workspace import LocalWorkspace

from conftest import file_block


class TestChangeApplicator(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures before each test method."""
        self.test_dir = tempfile.mkdtemp()
        self.root = Path(self.test_dir) / "project"
        self.root.mkdir()
        self.messages = []
        self.applicator = ChangeApplicator(LocalWorkspace(self.root), on_status=self.messages.append)

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_writes_file_in_root(self):
        results = self.applicator.apply([FileEdit("hello.py", "print('hello')\n")])

        self.assertEqual(len(results), 1)
        self.assertTrue(results[0].ok)
        self.assertEqual(results[0].created_dirs, [])
        self.assertEqual((self.root / "hello.py").read_text(encoding="utf-8"), "print('hello')\n")
        self.assertIn("Applied change: hello.py", self.messages)

    def test_overwrites_existing_file(self):
        (self.root / "README.md").write_text("old", encoding="utf-8")
        self.applicator.apply([FileEdit("README.md", "new")])
        self.assertEqual((self.root / "README.md").read_text(encoding="utf-8"), "new")

    def test_duplicate_paths_last_write_wins(self):
        results = self.applicator.apply([
            FileEdit("same.txt", "first"),
            FileEdit("same.txt", "second"),
        ])
        self.assertEqual([r.path for r in results], ["same.txt", "same.txt"])
        self.assertTrue(all(r.ok for r in results))
        self.assertEqual((self.root / "same.txt").read_text(encoding="utf-8"), "second")

    def test_path_escape_is_rejected_without_write(self):
        with patch.object(LocalWorkspace, "write") as mock_write:
            results = self.applicator.apply([FileEdit("../../etc/passwd", "root::0:0")])

        mock_write.assert_not_called()
        self.assertFalse(results[0].ok)
        self.assertEqual(results[0].error_kind, ErrorKind.PATH_ESCAPE)

    def test_absolute_path_is_rejected(self):
        outside = Path(self.test_dir) / "outside.txt"
        results = self.applicator.apply([FileEdit(str(outside), "x")])
        self.assertEqual(results[0].error_kind, ErrorKind.PATH_ESCAPE)
        self.assertFalse(outside.exists())

    def test_symlink_leaving_root_is_rejected(self):
        outside_dir = Path(self.test_dir) / "outside"
        outside_dir.mkdir()
        try:
            os.symlink(outside_dir, self.root / "link", target_is_directory=True)
        except (OSError, NotImplementedError):
            self.skipTest("symlinks not supported")
        results = self.applicator.apply([FileEdit("link/x.txt", "x")])
        self.assertEqual(results[0].error_kind, ErrorKind.PATH_ESCAPE)
        self.assertFalse((outside_dir / "x.txt").exists())

    def test_creates_missing_immediate_parent(self):
        results = self.applicator.apply([FileEdit("src/module.py", "x = 1\n")])
        self.assertTrue(results[0].ok)
        self.assertEqual(results[0].created_dirs, ["src"])
        self.assertTrue((self.root / "src" / "module.py").is_file())
        self.assertIn("Created directory: src", self.messages)

    def test_creates_deeply_nested_ancestors_top_down(self):
        results = self.applicator.apply([FileEdit("a/b/c/d/e.txt", "deep")])
        self.assertTrue(results[0].ok)
        self.assertEqual(results[0].created_dirs, ["a", "a/b", "a/b/c", "a/b/c/d"])
        self.assertEqual((self.root / "a/b/c/d/e.txt").read_text(encoding="utf-8"), "deep")
        created_messages = [m for m in self.messages if m.startswith("Created directory")]
        self.assertEqual(created_messages, [
            "Created directory: a",
            "Created directory: a/b",
            "Created directory: a/b/c",
            "Created directory: a/b/c/d",
        ])

    def test_only_missing_segments_are_created(self):
        (self.root / "src").mkdir()
        results = self.applicator.apply([FileEdit("src/pkg/mod.py", "")])
        self.assertEqual(results[0].created_dirs, ["src/pkg"])

    def test_ensure_directory_is_idempotent(self):
        target = self.applicator.workspace.root / "x" / "y"
        self.assertEqual(self.applicator.ensure_directory(target), ["x", "x/y"])
        self.assertEqual(self.applicator.ensure_directory(target), [])

    def test_one_failure_does_not_abort_batch(self):
        (self.root / "blocker").write_text("I am a file", encoding="utf-8")
        results = self.applicator.apply([
            FileEdit("first.txt", "1"),
            FileEdit("blocker/inner.txt", "2"),
            FileEdit("third.txt", "3"),
        ])

        self.assertEqual([r.ok for r in results], [True, False, True])
        self.assertEqual(results[1].error_kind, ErrorKind.WRITE_FAILURE)
        self.assertTrue(results[1].message)
        self.assertTrue((self.root / "first.txt").exists())
        self.assertTrue((self.root / "third.txt").exists())
        self.assertTrue(any(m.startswith("Error writing file blocker/inner.txt") for m in self.messages))

    def test_unresolvable_path_does_not_abort_batch(self):
        edits = parse_response(
            file_block("first.txt", "1") + file_block("bad\x00name.txt", "2") + file_block("third.txt", "3")
        )
        results = self.applicator.apply(edits)

        self.assertEqual([r.ok for r in results], [True, False, True])
        self.assertEqual(results[1].error_kind, ErrorKind.PATH_ESCAPE)
        self.assertTrue((self.root / "third.txt").exists())

    def test_symlink_loop_does_not_abort_batch(self):
        try:
            os.symlink(self.root / "loop", self.root / "loop")
        except (OSError, NotImplementedError):
            self.skipTest("symlinks not supported")

        results = self.applicator.apply([
            FileEdit("first.txt", "1"),
            FileEdit("loop/x.txt", "2"),
            FileEdit("third.txt", "3"),
        ])

        self.assertEqual([r.ok for r in results], [True, False, True])
        self.assertTrue((self.root / "third.txt").exists())

    def test_unexpected_error_is_write_failure(self):
        with patch.object(LocalWorkspace, "write", side_effect=[RuntimeError("boom"), None]):
            results = self.applicator.apply([FileEdit("a.txt", "x"), FileEdit("b.txt", "y")])
        self.assertEqual([r.ok for r in results], [False, True])
        self.assertEqual(results[0].error_kind, ErrorKind.WRITE_FAILURE)
        self.assertEqual(results[0].message, "boom")

    def test_partial_directory_creation_is_reported(self):
        workspace = self.applicator.workspace
        create = workspace.create_directory

        def fail_on_second_level(segment):
            if segment == "a/b":
                raise PermissionError("Permission denied")
            create(segment)

        with patch.object(workspace, "create_directory", side_effect=fail_on_second_level):
            results = self.applicator.apply([FileEdit("a/b/c.txt", "x")])

        self.assertFalse(results[0].ok)
        self.assertEqual(results[0].error_kind, ErrorKind.WRITE_FAILURE)
        self.assertEqual(results[0].created_dirs, ["a"])
        self.assertTrue((self.root / "a").is_dir())

    def test_writing_onto_directory_is_write_failure(self):
        (self.root / "somedir").mkdir()
        results = self.applicator.apply([FileEdit("somedir", "content")])
        self.assertEqual(results[0].error_kind, ErrorKind.WRITE_FAILURE)

    def test_io_error_from_write_is_reported(self):
        with patch.object(LocalWorkspace, "write", side_effect=PermissionError("Permission denied")):
            results = self.applicator.apply([FileEdit("a.txt", "x"), FileEdit("b.txt", "y")])
        self.assertEqual([r.error_kind for r in results], [ErrorKind.WRITE_FAILURE, ErrorKind.WRITE_FAILURE])
        self.assertEqual(results[0].message, "Permission denied")

    def test_content_is_written_verbatim_as_utf8(self):
        content = "héllo\r\n\twörld  \n\n"
        self.applicator.apply([FileEdit("u.txt", content)])
        self.assertEqual((self.root / "u.txt").read_bytes(), content.encode("utf-8"))

    def test_apply_edits_convenience(self):
        results = apply_edits(self.root, [FileEdit("pkg/__init__.py", "")])
        self.assertTrue(results[0].ok)
        self.assertTrue((self.root / "pkg" / "__init__.py").exists())


if __name__ == '__main__':
    unittest.main()
