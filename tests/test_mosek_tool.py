"""Tests for the waf configuration method."""

import optparse
import os

import pytest
from waflib import Configure, Errors
from waflib.ConfigSet import ConfigSet

import mosek_tool

LINUX_TOOLS = os.path.join('tools', 'platform', 'linux64x86')


def touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text('')
    return path


def make_mosek(root, tools=LINUX_TOOLS, lib='libmosek64.so'):
    touch(root / tools / 'h' / 'mosek.h')
    touch(root / tools / 'bin' / lib)
    return root


def parse_options(*args):
    parser = optparse.OptionParser()
    mosek_tool.options(parser)
    values, _ = parser.parse_args(list(args))
    return values


class Node:
    def __init__(self, path):
        self.path = path

    def abspath(self):
        return str(self.path)


class FakeContext:
    """Just enough of a ConfigurationContext for check_mosek"""

    def __init__(self, bld, *args, **kw):
        self.env = ConfigSet()
        self.env.DEST_OS = kw.get('dest_os', 'linux')
        self.env.DEST_CPU = kw.get('dest_cpu', 'x86_64')
        self.options = parse_options(*args)
        self.bldnode = Node(bld)
        self.outputs = {}
        self.messages = []
        self.log = []
        self.looked_up = []

    def start_msg(self, msg, *k, **kw):
        self.messages.append(('start', msg))

    def end_msg(self, result, color=None, **kw):
        self.messages.append(('end', result, color))

    def msg(self, msg, result, color=None, **kw):
        self.messages.append(('msg', msg, result, color))

    def find_file(self, filename, path_list=[]):
        self.looked_up.append(filename)
        return Configure.find_file(self, filename, path_list)

    def to_log(self, text):
        self.log.append(text)

    def fatal(self, msg):
        raise Errors.ConfigurationError(msg)

    def cmd_and_log(self, cmd, **kw):
        return self.outputs[os.path.basename(cmd[0])]


@pytest.fixture(autouse=True)
def no_mosek_env(monkeypatch):
    monkeypatch.delenv('MOSEK_DIR', raising=False)


class TestOptions:
    def test_defaults(self):
        opts = parse_options()
        assert opts.mosek is None
        assert opts.mosek_matlab is None
        assert opts.mosek_java is None
        assert opts.mosek_python is None
        assert opts.mosek_no_omp is None
        assert opts.mosek_debug is False

    def test_toggles(self):
        opts = parse_options('--mosek', '/opt/mosek', '--no-mosek-matlab', '--mosek-java', '--matlab-release', 'R2015a')
        assert opts.mosek == '/opt/mosek'
        assert opts.mosek_matlab is False
        assert opts.mosek_java is True
        assert opts.matlab_release == 'R2015a'


class TestCheckMosek:
    def test_found(self, tmp_path):
        root = make_mosek(tmp_path / 'mosek')
        ctx = FakeContext(tmp_path, '--mosek', str(root))
        assert mosek_tool.check_mosek(ctx, required=True)
        bin_dir = str(root / LINUX_TOOLS / 'bin')
        assert ctx.env.MOSEK_FOUND is True
        assert ctx.env.INCLUDES_MOSEK == [str(root / LINUX_TOOLS / 'h')]
        assert ctx.env.LIBPATH_MOSEK == [bin_dir]
        assert ctx.env.LIB_MOSEK == ['mosek64']
        assert ctx.env.MOSEK_LIBRARY == os.path.join(bin_dir, 'libmosek64.so')
        assert ctx.env.MOSEK_DIR == str(root)
        assert ('start', 'Checking MOSEK includes') in ctx.messages
        assert ('start', 'Checking MOSEK libs') in ctx.messages
        assert ctx.messages[-1] == ('msg', 'Checking for MOSEK', str(root), None)

    def test_files_are_looked_up_by_the_context(self, tmp_path):
        root = make_mosek(tmp_path / 'mosek')
        ctx = FakeContext(tmp_path, '--mosek', str(root))
        assert mosek_tool.check_mosek(ctx)
        assert ctx.looked_up == [['mosek.h'], ['libmosek64.so', 'libmosek64.a']]

    def test_context_lookup_failure_means_not_found(self, tmp_path):
        ctx = FakeContext(tmp_path)
        probes = mosek_tool.WafProbes(ctx)
        assert probes.find_file(['mosek.h'], [str(tmp_path)]) is None
        assert ctx.looked_up == [['mosek.h']]

    def test_missing_required(self, tmp_path):
        ctx = FakeContext(tmp_path, '--mosek', str(tmp_path))
        with pytest.raises(Errors.ConfigurationError, match='MOSEK_LIBRARY'):
            mosek_tool.check_mosek(ctx, required=True)

    def test_missing_optional(self, tmp_path):
        ctx = FakeContext(tmp_path, '--mosek', str(tmp_path))
        assert mosek_tool.check_mosek(ctx) is False
        assert ctx.env.MOSEK_FOUND is False
        assert not ctx.env.LIB_MOSEK
        assert ('end', 'Not found in %s' % [os.path.join(str(tmp_path), LINUX_TOOLS, 'h'), str(tmp_path)], 'YELLOW') in ctx.messages
        assert ctx.messages[-1][3] == 'YELLOW'

    def test_quiet(self, tmp_path):
        ctx = FakeContext(tmp_path, '--mosek', str(tmp_path))
        assert mosek_tool.check_mosek(ctx, quiet=True) is False
        assert ctx.messages == []
        assert ctx.log

    def test_32_bit_target(self, tmp_path):
        tools = os.path.join('tools', 'platform', 'linux32x86')
        root = make_mosek(tmp_path / 'mosek', tools=tools, lib='libmosek.so')
        ctx = FakeContext(tmp_path, '--mosek', str(root), dest_cpu='x86')
        assert mosek_tool.check_mosek(ctx)
        assert ctx.env.MOSEK_TOOLS_SUFFIX == 'tools/platform/linux32x86'
        assert ctx.env.LIB_MOSEK == ['mosek']

    def test_back_derived_root_from_environment(self, tmp_path, monkeypatch):
        root = make_mosek(tmp_path / 'opt' / 'mosek')
        monkeypatch.setenv('C_INCLUDE_PATH', str(root / LINUX_TOOLS / 'h'))
        monkeypatch.setenv('LD_LIBRARY_PATH', str(root / LINUX_TOOLS / 'bin'))
        ctx = FakeContext(tmp_path)
        assert mosek_tool.check_mosek(ctx)
        assert ctx.env.MOSEK_DIR == str(root)

    def test_second_pass_keeps_results(self, tmp_path):
        root = make_mosek(tmp_path / 'mosek')
        ctx = FakeContext(tmp_path, '--mosek', str(root))
        assert mosek_tool.check_mosek(ctx)
        library = ctx.env.MOSEK_LIBRARY
        os.remove(library)
        assert mosek_tool.check_mosek(ctx)
        assert ctx.env.MOSEK_LIBRARY == library
        assert ctx.env.LIB_MOSEK == ['mosek64']

    def test_python_version_from_python_tool(self, tmp_path):
        root = make_mosek(tmp_path / 'mosek')
        touch(root / LINUX_TOOLS / 'python' / '3' / 'mosek' / 'array.py')
        ctx = FakeContext(tmp_path, '--mosek', str(root), '--mosek-python')
        ctx.env.PYTHON_VERSION = '3.11'
        assert mosek_tool.check_mosek(ctx)
        assert ctx.env.MOSEK_PYTHON_VERSION == '3.11'
        assert ctx.env.MOSEK_PYTHONPATH == str(root / LINUX_TOOLS / 'python' / '3')

    def test_matlab_release_probe(self, tmp_path):
        root = make_mosek(tmp_path / 'mosek')
        touch(root / 'toolbox' / 'r2014b' / 'mosekopt.mexa64')
        ctx = FakeContext(tmp_path, '--mosek', str(root))
        ctx.env.MATLAB = [str(tmp_path / 'matlab' / 'bin' / 'matlab')]
        ctx.outputs['matlab'] = '\n2015a\n'
        assert mosek_tool.check_mosek(ctx)
        assert ctx.env.MOSEK_MATLAB is True
        assert ctx.env.MATLAB_RELEASE == 'R2015a'
        assert ctx.env.MEX_EXT == 'mexa64'
        assert ctx.env.MOSEK_TOOLBOX_SUFFIX == 'toolbox/r2014b'
        assert ctx.env.MOSEK_MEX_FILES == [str(root / 'toolbox' / 'r2014b' / 'mosekopt.mexa64')]

    def test_matlab_release_probe_without_answer(self, tmp_path):
        root = make_mosek(tmp_path / 'mosek')
        ctx = FakeContext(tmp_path, '--mosek', str(root))
        ctx.env.MATLAB = [str(tmp_path / 'matlab')]
        ctx.outputs['matlab'] = ''
        with pytest.raises(Errors.ConfigurationError, match='MATLAB_RELEASE'):
            mosek_tool.check_mosek(ctx)

    def test_matlab_disabled_on_command_line(self, tmp_path):
        root = make_mosek(tmp_path / 'mosek')
        ctx = FakeContext(tmp_path, '--mosek', str(root), '--no-mosek-matlab')
        ctx.env.MATLAB = [str(tmp_path / 'matlab')]
        assert mosek_tool.check_mosek(ctx)
        assert ctx.env.MOSEK_MATLAB is False
        assert not ctx.env.MATLAB_RELEASE

    def test_debug_dump(self, tmp_path):
        root = make_mosek(tmp_path / 'mosek')
        ctx = FakeContext(tmp_path, '--mosek', str(root), '--mosek-debug')
        assert mosek_tool.check_mosek(ctx)
        dump = ConfigSet(str(tmp_path / 'mosek_variables.py'))
        assert dump.MOSEK_INCLUDE_DIR == str(root / LINUX_TOOLS / 'h')
        assert dump.MOSEK_LIBRARY_NAMES == ['mosek64']


class TestPointerBits:
    @pytest.mark.parametrize('cpu,bits', [('x86_64', 64), ('aarch64', 64), ('x86', 32), ('arm', 32), ('ppc64le', 64)])
    def test_dest_cpu(self, tmp_path, cpu, bits):
        ctx = FakeContext(tmp_path, dest_cpu=cpu)
        assert mosek_tool.pointer_bits(ctx) == bits
