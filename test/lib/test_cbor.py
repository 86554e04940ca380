from carindex.lib.cbor import decode_dag_cbor
from carindex.lib.cid import Cid
from carindex.lib.exceptions import CarHeaderError

from .. import TestBase, cbor_link, legacy_cid, versioned_cid


class TestDagCborDecoder(TestBase):
    """
    Some of the tests are based on examples from RFC 8949, Appendix A:
    https://www.rfc-editor.org/rfc/rfc8949.html#appendix-A
    """

    def _decode(self, hex_input: str):
        return decode_dag_cbor(bytes.fromhex(hex_input))

    def _reject(self, hex_input: str):
        with self.assertRaises(CarHeaderError) as context:
            self._decode(hex_input)
        return context.exception

    def test_uint(self):
        self.assertEqual(self._decode('00'), 0)
        self.assertEqual(self._decode('17'), 23)
        self.assertEqual(self._decode('1818'), 24)
        self.assertEqual(self._decode('1903e8'), 1000)
        self.assertEqual(self._decode('1a000f4240'), 1000000)
        self.assertEqual(self._decode('1b000000e8d4a51000'), 1000000000000)

    def test_negative(self):
        self.assertEqual(self._decode('20'), -1)
        self.assertEqual(self._decode('3863'), -100)

    def test_simple(self):
        self.assertIs(self._decode('f4'), False)
        self.assertIs(self._decode('f5'), True)
        self.assertIsNone(self._decode('f6'))

    def test_float(self):
        self.assertEqual(self._decode('fb3ff199999999999a'), 1.1)

    def test_strings(self):
        self.assertEqual(self._decode('4401020304'), B'\x01\x02\x03\x04')
        self.assertEqual(self._decode('6449455446'), 'IETF')

    def test_containers(self):
        self.assertEqual(self._decode('83010203'), [1, 2, 3])
        self.assertEqual(self._decode('8301820203820405'), [1, [2, 3], [4, 5]])
        self.assertEqual(self._decode('a26161016162820203'), {'a': 1, 'b': [2, 3]})

    def test_cid_link(self):
        for raw in (legacy_cid(B'a'), versioned_cid(B'b', codec=0x71)):
            cid = decode_dag_cbor(cbor_link(raw))
            self.assertIsInstance(cid, Cid)
            self.assertEqual(cid.raw, raw)

    def test_cid_link_without_zero_prefix(self):
        data = cbor_link(legacy_cid(B'a'))
        data = data[:4] + B'\x01' + data[5:]
        with self.assertRaises(CarHeaderError):
            decode_dag_cbor(data)

    def test_cid_link_with_trailing_bytes(self):
        raw = legacy_cid(B'a') + B'\0'
        with self.assertRaises(CarHeaderError):
            decode_dag_cbor(cbor_link(raw))

    def test_other_tags_are_rejected(self):
        self._reject('d82076687474703a2f2f7777772e6578616d706c652e636f6d')
        self._reject('c249010000000000000000')

    def test_indefinite_lengths_are_rejected(self):
        self._reject('7f657374726561646d696e67ff')
        self._reject('9f018202039f0405ffff')
        self._reject('ff')

    def test_other_simple_values_are_rejected(self):
        self._reject('f7')
        self._reject('f818')
        self._reject('f93c00')
        self._reject('fa47c35000')

    def test_map_keys_must_be_strings(self):
        self._reject('a201020304')

    def test_duplicate_map_keys(self):
        self._reject('a2616101616102')

    def test_deep_nesting(self):
        with self.assertRaises(CarHeaderError) as context:
            decode_dag_cbor(B'\x81' * 100_000 + B'\x00')
        self.assertIn('nested too deeply', str(context.exception))

    def test_truncated(self):
        self.assertIn('ends prematurely', str(self._reject('830102')))

    def test_trailing_bytes(self):
        self._reject('0101')

    def test_invalid_utf8(self):
        self._reject('62c328')

    def test_invalid_additional_information(self):
        self._reject('1c')
