import io
import os

from unittest.mock import patch

from carindex import __version__
from carindex.cli import argparser, main
from carindex.lib import json

from test import CarBuilder, TestBase, legacy_cid, uvarint, versioned_cid


class BrokenPipe(io.BytesIO):

    def write(self, data):
        raise BrokenPipeError

    def fileno(self):
        return 1


class TestCommandLine(TestBase):

    def _run(self, *argv):
        stdout = io.TextIOWrapper(io.BytesIO())
        with patch('sys.stdout', new=stdout):
            code = main(list(argv))
            stdout.flush()
            output = stdout.buffer.getvalue()
        return code, output

    def _container(self):
        builder = CarBuilder([versioned_cid(B'root', codec=0x71)])
        builder.add(legacy_cid(B'first'), B'first')
        builder.add(versioned_cid(B'second'), B'second')
        return builder, self.write_temporary(builder.build())

    def test_header(self):
        _, path = self._container()
        code, output = self._run('header', path)
        self.assertEqual(code, 0)
        header = json.loads(output)
        self.assertEqual(header['version'], 1)
        root, = header['roots']
        self.assertTrue(root['/'].startswith('bafyrei'))

    def test_index(self):
        builder, path = self._container()
        code, output = self._run('index', path)
        self.assertEqual(code, 0)
        lines = output.splitlines()
        self.assertEqual(len(lines), 2)
        for line, layout in zip(lines, builder.expected()):
            entry = json.loads(line)
            self.assertEqual(entry['offset'], layout['offset'])
            self.assertEqual(entry['length'], layout['length'])
            self.assertEqual(entry['blockOffset'], layout['block_offset'])
            self.assertEqual(entry['blockLength'], layout['block_length'])
        first, second = (json.loads(line)['cid']['/'] for line in lines)
        self.assertTrue(first.startswith('Qm'))
        self.assertTrue(second.startswith('bafkrei'))

    def test_index_unregistered_codec(self):
        cid = uvarint(1) + uvarint(0x300000) + uvarint(0x12) + uvarint(32) + bytes(32)
        path = self.write_temporary(CarBuilder([cid]).add(cid, B'private').build())
        code, output = self._run('index', path)
        self.assertEqual(code, 0)
        entry = json.loads(output)
        self.assertEqual(entry['blockLength'], 7)
        self.assertTrue(entry['cid']['/'].startswith('b'))
        code, output = self._run('header', path)
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(output)['roots'], [entry['cid']])

    def test_index_header_only(self):
        path = self.write_temporary(CarBuilder().build())
        code, output = self._run('index', path)
        self.assertEqual(code, 0)
        self.assertEqual(output, B'')

    def test_malformed_input(self):
        builder, _ = self._container()
        path = self.write_temporary(builder.build() + B'\0')
        code, output = self._run('index', path)
        self.assertEqual(code, 1)
        self.assertEqual(len(output.splitlines()), 2)

    def test_missing_file(self):
        code, output = self._run('header', os.path.join(os.path.dirname(__file__), 'missing.car'))
        self.assertEqual(code, 1)
        self.assertEqual(output, B'')

    def test_window_option(self):
        path = self.write_temporary(CarBuilder().build() + B'\x80\x80\x01')
        code, _ = self._run('-w', '2', 'index', path)
        self.assertEqual(code, 1)

    def test_usage_errors(self):
        for argv in ([], ['frobnicate'], ['index']):
            with patch('sys.stderr', new=io.StringIO()), self.assertRaises(SystemExit) as context:
                main(argv)
            self.assertEqual(context.exception.code, 2)

    def test_version(self):
        stdout = io.StringIO()
        with patch('sys.stdout', new=stdout), self.assertRaises(SystemExit) as context:
            main(['-V'])
        self.assertEqual(context.exception.code, 0)
        self.assertIn(__version__, stdout.getvalue())

    def test_verbosity_flags(self):
        args = argparser().parse_args(['-vv', 'index', 'archive.car'])
        self.assertEqual(args.verbose, 2)
        self.assertIsNone(args.window)
        self.assertEqual(args.command, 'index')

    def test_broken_pipe(self):
        _, path = self._container()
        stdout = io.TextIOWrapper(BrokenPipe())
        with patch('sys.stdout', new=stdout), patch('os.open', return_value=99), patch('os.dup2') as dup2:
            code = main(['index', path])
        self.assertEqual(code, 1)
        dup2.assert_called_once_with(99, 1)
