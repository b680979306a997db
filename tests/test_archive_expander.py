import io
import tempfile
import unittest
import zipfile
from pathlib import Path
from unittest import mock

from scval.errors import ArchiveExtractionError, NonexistentPathError
from scval.ingest.archive import ArchiveExpander, open_zip
from scval.ingest.models import PathBuffer
from scval.ingest.traverse import traverse_path
from tests.metadata_fixtures import SOURCE_A, SOURCE_B, zip_bytes


class TestTraversePath(unittest.TestCase):
    def test_files_visited_depth_first_and_directories_post_order(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td) / "root"
            (root / "sub" / "deeper").mkdir(parents=True)
            (root / "a.txt").write_text("a", encoding="utf-8")
            (root / "sub" / "b.txt").write_text("b", encoding="utf-8")
            (root / "sub" / "deeper" / "c.txt").write_text("c", encoding="utf-8")

            events: list[str] = []
            traverse_path(
                root,
                lambda p: events.append("file:" + p.relative_to(root).as_posix()),
                lambda p: events.append("dir:" + (p.relative_to(root).as_posix() if p != root else ".")),
            )

        self.assertEqual(
            events,
            [
                "file:a.txt",
                "file:sub/b.txt",
                "file:sub/deeper/c.txt",
                "dir:sub/deeper",
                "dir:sub",
                "dir:.",
            ],
        )

    def test_single_file_is_handed_to_worker(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            f = Path(td) / "only.sol"
            f.write_text(SOURCE_A, encoding="utf-8")
            seen: list[Path] = []
            traverse_path(f, seen.append)
        self.assertEqual(seen, [f])

    def test_nonexistent_path_raises(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            missing = Path(td) / "gone"
            with self.assertRaises(NonexistentPathError) as ctx:
                traverse_path(missing, lambda p: None)
        self.assertIn(str(missing), str(ctx.exception))
        self.assertEqual(ctx.exception.code, "NONEXISTENT_PATH")


class TestZipProbe(unittest.TestCase):
    def test_probe_accepts_archives_and_rejects_text(self) -> None:
        zf = open_zip(zip_bytes({"A.sol": SOURCE_A.encode("utf-8")}))
        self.assertIsNotNone(zf)
        self.assertEqual(zf.namelist(), ["A.sol"])
        zf.close()
        self.assertIsNone(open_zip(SOURCE_A.encode("utf-8")))
        self.assertIsNone(open_zip(b""))
        self.assertIsNone(open_zip(b"PK\x03\x04 truncated"))
        self.assertIsNone(open_zip(b"{}"))


class TestArchiveExpander(unittest.TestCase):
    def test_regular_files_pass_through_unchanged(self) -> None:
        files = [PathBuffer(path="A.sol", buffer=SOURCE_A.encode("utf-8"))]
        out = ArchiveExpander().find_input_files(files)
        self.assertEqual(out, files)

    def test_zip_members_replace_archive_and_scratch_is_removed(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            scratch = Path(td) / "scratch"
            archive = PathBuffer(
                path="bundle.zip",
                buffer=zip_bytes(
                    {
                        "A.sol": SOURCE_A.encode("utf-8"),
                        "lib/B.sol": SOURCE_B.encode("utf-8"),
                    }
                ),
            )
            out = ArchiveExpander(scratch_dir=scratch).find_input_files([archive])

            self.assertEqual(list(scratch.iterdir()), [])

        by_path = {f.path: f for f in out}
        self.assertEqual(sorted(by_path), ["A.sol", "lib/B.sol"])
        self.assertEqual(by_path["lib/B.sol"].buffer, SOURCE_B.encode("utf-8"))
        self.assertTrue(all(f.origin == "bundle.zip" for f in out))

    def test_nested_archives_are_expanded_with_outer_origin(self) -> None:
        inner = zip_bytes({"B.sol": SOURCE_B.encode("utf-8")})
        outer = zip_bytes({"A.sol": SOURCE_A.encode("utf-8"), "deps/inner.zip": inner})
        files = [
            PathBuffer(path="outer.zip", buffer=outer),
            PathBuffer(path="notes.txt", buffer=b"notes"),
        ]

        with tempfile.TemporaryDirectory() as td:
            out = ArchiveExpander(scratch_dir=Path(td)).find_input_files(files)
            self.assertEqual(list(Path(td).iterdir()), [])

        self.assertEqual([f.path for f in out], ["notes.txt", "A.sol", "B.sol"])
        self.assertEqual(out[2].origin, "outer.zip")
        self.assertIsNone(out[0].origin)
        self.assertEqual(len(files), 2)

    def test_corrupt_member_fails_and_scratch_is_removed(self) -> None:
        payload = b"contract Corrupt {}\n"
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_STORED) as zf:
            zf.writestr("A.sol", SOURCE_A.encode("utf-8"))
            zf.writestr("Corrupt.sol", payload)
        # same length, so the archive still opens but the CRC no longer matches
        data = buf.getvalue().replace(payload, b"contract Currupt {}\n", 1)
        archive = PathBuffer(path="bundle.zip", buffer=data)

        with tempfile.TemporaryDirectory() as td:
            scratch = Path(td) / "scratch"
            self.assertIsNotNone(open_zip(data))
            with self.assertRaises(ArchiveExtractionError) as ctx:
                ArchiveExpander(scratch_dir=scratch).find_input_files([archive])
            self.assertEqual(list(scratch.iterdir()), [])

        self.assertEqual(ctx.exception.code, "ARCHIVE_EXTRACTION_FAILED")
        self.assertEqual(ctx.exception.path, "bundle.zip")
        self.assertIsInstance(ctx.exception.__cause__, zipfile.BadZipFile)

    def test_encrypted_member_fails_and_scratch_is_removed(self) -> None:
        archive = PathBuffer(path="secret.zip", buffer=zip_bytes({"A.sol": SOURCE_A.encode("utf-8")}))
        err = RuntimeError("File 'A.sol' is encrypted, password required for extraction")

        with tempfile.TemporaryDirectory() as td:
            scratch = Path(td) / "scratch"
            with mock.patch.object(zipfile.ZipFile, "extractall", side_effect=err):
                with self.assertRaises(ArchiveExtractionError) as ctx:
                    ArchiveExpander(scratch_dir=scratch).find_input_files([archive])
            self.assertEqual(list(scratch.iterdir()), [])

        self.assertIn("encrypted", str(ctx.exception))

    def test_scratch_directories_are_unique_per_expansion(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            expander = ArchiveExpander(scratch_dir=Path(td))
            seen: set[Path] = set()
            for _ in range(3):
                seen.add(expander._make_scratch_dir())
            self.assertEqual(len(seen), 3)


if __name__ == "__main__":
    unittest.main()
