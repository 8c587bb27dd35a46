from __future__ import annotations

import os
import unittest

from Cryptodome.Cipher import AES

from fenc.ciphers import CbcTransform, CtrTransform, get_transform
from fenc.errors import AlgorithmError, FormatError
from fenc.keys import key_hash


def _run(stream, data: bytes, step: int) -> bytes:
    out = []
    for i in range(0, len(data), step):
        out.append(stream.update(data[i : i + step]))
    out.append(stream.finalize())
    return b"".join(out)


class CbcTransformTests(unittest.TestCase):
    def setUp(self):
        self.key = key_hash("k1")
        self.iv = os.urandom(16)
        self.t = CbcTransform()

    def test_roundtrip_odd_chunking(self):
        for size in (0, 1, 15, 16, 17, 31, 32, 33, 1000):
            data = os.urandom(size)
            for step in (1, 7, 16, 64):
                ct = _run(self.t.encryptor(self.key, self.iv), data, step)
                self.assertEqual(len(ct), self.t.output_size(size))
                self.assertEqual(len(ct) % 16, 0)
                pt = _run(self.t.decryptor(self.key, self.iv), ct, step)
                self.assertEqual(pt, data)

    def test_matches_one_shot_cbc(self):
        data = b"0123456789"
        ct = _run(self.t.encryptor(self.key, self.iv), data, 3)
        expected = AES.new(self.key, AES.MODE_CBC, iv=self.iv).encrypt(data + bytes([6]) * 6)
        self.assertEqual(ct, expected)

    def test_bad_key_length(self):
        with self.assertRaises(AlgorithmError):
            self.t.encryptor(b"short", self.iv)
        with self.assertRaises(AlgorithmError):
            self.t.decryptor(self.key, b"\x00" * 8)

    def test_bad_padding(self):
        # A final block that decrypts to all zeros never carries valid PKCS#7 padding.
        block = AES.new(self.key, AES.MODE_ECB).encrypt(bytes(a ^ b for a, b in zip(b"\x00" * 16, self.iv)))
        dec = self.t.decryptor(self.key, self.iv)
        self.assertEqual(dec.update(block), b"")
        with self.assertRaises(FormatError):
            dec.finalize()

    def test_truncated_ciphertext(self):
        dec = self.t.decryptor(self.key, self.iv)
        dec.update(b"\x01" * 20)
        with self.assertRaises(FormatError):
            dec.finalize()

    def test_empty_ciphertext(self):
        with self.assertRaises(FormatError):
            self.t.decryptor(self.key, self.iv).finalize()


class CtrTransformTests(unittest.TestCase):
    def test_roundtrip_preserves_length(self):
        key = key_hash("k1")
        iv = os.urandom(16)
        t = CtrTransform()
        data = os.urandom(1234)
        ct = _run(t.encryptor(key, iv), data, 100)
        self.assertEqual(len(ct), len(data))
        self.assertNotEqual(ct, data)
        self.assertEqual(_run(t.decryptor(key, iv), ct, 33), data)

    def test_get_transform(self):
        self.assertIsInstance(get_transform(), CbcTransform)
        self.assertIsInstance(get_transform("CTR"), CtrTransform)
        self.assertFalse(get_transform("ctr").uses_marker)
        with self.assertRaises(ValueError):
            get_transform("ecb")


if __name__ == "__main__":
    unittest.main()
