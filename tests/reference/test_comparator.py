import io
import tempfile
import unittest
from pathlib import Path

from ffextract.reference.comparator import (
    ComparisonOutcome, ComparisonResult, ReferenceCandidate, StreamComparator)


class StreamComparatorTest(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.reference_dir = Path(self._tmpdir.name)

    def tearDown(self):
        self._tmpdir.cleanup()

    def _compare(self, reference: bytes | None, data: bytes, declared_size: int | None = None,
                 chunk_size: int = 4) -> tuple[ComparisonOutcome, io.BytesIO]:
        path = self.reference_dir / 'ref'
        if reference is not None:
            path.write_bytes(reference)
        stream = io.BytesIO(data)
        with ReferenceCandidate(path) as candidate:
            outcome = StreamComparator(chunk_size).compare(
                stream, candidate, len(data) if declared_size is None else declared_size)
        return outcome, stream

    def test_full_match(self):
        outcome, stream = self._compare(b'hello world', b'hello world')
        self.assertEqual(ComparisonOutcome(ComparisonResult.FULL_MATCH, 11), outcome)
        self.assertEqual(11, stream.tell())

    def test_missing_candidate_consumes_nothing(self):
        outcome, stream = self._compare(None, b'data')
        self.assertEqual(ComparisonResult.NO_CANDIDATE, outcome.result)
        self.assertEqual(0, stream.tell())

    def test_directory_candidate_is_not_usable(self):
        (self.reference_dir / 'ref').mkdir()
        outcome, stream = self._compare(None, b'data')
        self.assertEqual(ComparisonResult.NO_CANDIDATE, outcome.result)

    def test_size_mismatch_consumes_nothing(self):
        outcome, stream = self._compare(b'abc', b'abcd')
        self.assertEqual(ComparisonResult.SIZE_MISMATCH, outcome.result)
        self.assertEqual(0, outcome.equal_bytes)
        self.assertEqual(0, stream.tell())

    def test_divergence_keeps_mismatching_chunk(self):
        outcome, stream = self._compare(b'AAAABBBBCCCC', b'AAAABBBXCCCC')
        self.assertEqual(ComparisonOutcome(ComparisonResult.DIVERGED, 4, b'BBBX'), outcome)
        # Only the mismatching chunk was drained past the equal prefix
        self.assertEqual(8, stream.tell())

    def test_divergence_in_first_chunk(self):
        outcome, _ = self._compare(b'ABX', b'ABC', chunk_size=65536)
        self.assertEqual(ComparisonOutcome(ComparisonResult.DIVERGED, 0, b'ABC'), outcome)

    def test_divergence_in_last_partial_chunk(self):
        outcome, _ = self._compare(b'AAAABBBBCC', b'AAAABBBBCD')
        self.assertEqual(ComparisonOutcome(ComparisonResult.DIVERGED, 8, b'CD'), outcome)

    def test_zero_length_is_full_match(self):
        outcome, _ = self._compare(b'', b'')
        self.assertEqual(ComparisonOutcome(ComparisonResult.FULL_MATCH, 0), outcome)

    def test_stream_shorter_than_declared_size(self):
        outcome, _ = self._compare(b'abcdef', b'abc', declared_size=6)
        self.assertEqual(ComparisonOutcome(ComparisonResult.DIVERGED, 3, b''), outcome)

    def test_stream_longer_than_reference(self):
        outcome, _ = self._compare(b'abcd', b'abcdefgh', declared_size=4)
        self.assertEqual(ComparisonOutcome(ComparisonResult.DIVERGED, 4, b'efgh'), outcome)

    def test_equal_bytes_never_exceed_sizes(self):
        reference = bytes(range(256)) * 10
        for position in (0, 1, 255, 1024, len(reference) - 1):
            data = bytearray(reference)
            data[position] ^= 0xFF
            outcome, _ = self._compare(reference, bytes(data), chunk_size=100)
            self.assertEqual(ComparisonResult.DIVERGED, outcome.result)
            self.assertEqual(position // 100 * 100, outcome.equal_bytes)
            self.assertLessEqual(outcome.equal_bytes, len(reference))

    def test_invalid_chunk_size(self):
        with self.assertRaises(ValueError):
            StreamComparator(0)


class ReferenceCandidateTest(unittest.TestCase):
    def test_handle_released_on_exit(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / 'ref'
            path.write_bytes(b'content')
            with ReferenceCandidate(path) as candidate:
                self.assertTrue(candidate.open())
                handle = candidate.file
            self.assertTrue(handle.closed)
            with self.assertRaises(RuntimeError):
                _ = candidate.file

    def test_open_missing_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with ReferenceCandidate(Path(tmpdir) / 'missing') as candidate:
                self.assertFalse(candidate.open())


if __name__ == '__main__':
    unittest.main()
