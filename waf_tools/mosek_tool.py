#!/usr/bin/env python
# encoding: utf-8
#|
#|    Copyright (c) 2022-2025 Computational Intelligence Lab, University of Patras, Greece
#|    Copyright (c) 2023-2025 Laboratory of Automation and Robotics, University of Patras, Greece
#|    Copyright (c) 2022-2025 Konstantinos Chatzilygeroudis
#|    Authors:  Konstantinos Chatzilygeroudis
#|    email:    costashatz@gmail.com
#|    website:  https://nosalro.github.io/
#|              https://lar.upatras.gr/
#|              http://cilab.math.upatras.gr/
#|
#|    This file is part of waf-mosek.
#|
#|    All rights reserved.
#|
#|    Redistribution and use in source and binary forms, with or without
#|    modification, are permitted provided that the following conditions are met:
#|
#|    1. Redistributions of source code must retain the above copyright notice, this
#|       list of conditions and the following disclaimer.
#|
#|    2. Redistributions in binary form must reproduce the above copyright notice,
#|       this list of conditions and the following disclaimer in the documentation
#|       and/or other materials provided with the distribution.
#|
#|    THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
#|    AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
#|    IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
#|    DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE
#|    FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
#|    DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
#|    SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
#|    CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
#|    OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
#|    OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
#|

"""
Quick n dirty MOSEK detection

    def options(opt):
        opt.load('mosek_tool', tooldir='waf_tools')

    def configure(conf):
        conf.load('mosek_tool', tooldir='waf_tools')
        conf.check_mosek(required=True)

Sets INCLUDES_MOSEK, LIBPATH_MOSEK and LIB_MOSEK for use='MOSEK', plus the
MOSEK_* variables listed in mosek_search.VARIABLES.
"""

import os
import re
import struct

from waflib import Context, Errors, Utils
from waflib.ConfigSet import ConfigSet
from waflib.Configure import conf

import mosek_search

CPU_64 = ('x86_64', 'amd64', 'aarch64', 'arm64', 'ia', 'ia64', 'powerpc64', 'ppc64', 'ppc64le', 's390x', 'sparc64', 'mips64', 'riscv64', 'loongarch64')


def options(opt):
    opt.add_option('--mosek', type='string', help='path to MOSEK', dest='mosek')
    opt.add_option('--mosek-matlab', action='store_true', default=None, help='find the MATLAB components of MOSEK', dest='mosek_matlab')
    opt.add_option('--no-mosek-matlab', action='store_false', default=None, help='do not find the MATLAB components of MOSEK', dest='mosek_matlab')
    opt.add_option('--mosek-java', action='store_true', default=None, help='find the Java components of MOSEK', dest='mosek_java')
    opt.add_option('--no-mosek-java', action='store_false', default=None, help='do not find the Java components of MOSEK', dest='mosek_java')
    opt.add_option('--mosek-python', action='store_true', default=None, help='find the Python components of MOSEK', dest='mosek_python')
    opt.add_option('--no-mosek-python', action='store_false', default=None, help='do not find the Python components of MOSEK', dest='mosek_python')
    opt.add_option('--mosek-no-omp', action='store_true', default=None, help='link the MOSEK library built without OpenMP', dest='mosek_no_omp')
    opt.add_option('--mosek-tools-suffix', type='string', help='platform tools directory of MOSEK, e.g. tools/platform/linux64x86', dest='mosek_tools_suffix')
    opt.add_option('--matlab-release', type='string', help='MATLAB release, e.g. R2015a', dest='matlab_release')
    opt.add_option('--mex-ext', type='string', help='extension of MEX-files, e.g. mexa64', dest='mex_ext')
    opt.add_option('--mosek-python-version', type='string', help='Python version the MOSEK modules are for, e.g. 3.10', dest='mosek_python_version')
    opt.add_option('--mosek-debug', action='store_true', default=False, help='write the MOSEK variables to mosek_variables.py in the build directory', dest='mosek_debug')


class WafProbes(mosek_search.Probes):
    """Probes backed by the configuration context"""

    def __init__(self, ctx):
        self.ctx = ctx

    def find_file(self, names, dirs):
        try:
            return self.ctx.find_file(names, dirs)
        except Errors.ConfigurationError:
            return None

    def matlab_release(self):
        if not self.ctx.env.MATLAB:
            raise mosek_search.ProbeUnavailable('MATLAB')
        cmd = Utils.to_list(self.ctx.env.MATLAB) + ['-nodisplay', '-nosplash', '-nojvm', '-r', "disp(version('-release')); exit"]
        try:
            out = self.ctx.cmd_and_log(cmd, quiet=Context.BOTH)
        except Errors.WafError as e:
            self.ctx.to_log('MATLAB release probe failed: %s' % e)
            return None
        # version('-release') prints e.g. 2015a
        m = re.search(r'\b[rR]?([0-9]{4}[ab])\b', out)
        return 'R' + m.group(1) if m else None

    def mex_ext(self):
        if not self.ctx.env.MATLAB:
            raise mosek_search.ProbeUnavailable('MATLAB')
        matlab = os.path.realpath(Utils.to_list(self.ctx.env.MATLAB)[0])
        mexext = os.path.join(os.path.dirname(matlab), 'mexext')
        if Utils.is_win32:
            mexext += '.bat'
        if not os.path.isfile(mexext):
            raise mosek_search.ProbeUnavailable(mexext)
        try:
            return self.ctx.cmd_and_log([mexext], quiet=Context.BOTH).strip() or None
        except Errors.WafError as e:
            self.ctx.to_log('mexext probe failed: %s' % e)
            return None

    def python_version(self):
        env = self.ctx.env
        if not env.PYTHON_VERSION:
            check = getattr(self.ctx, 'check_python_version', None)
            if not env.PYTHON or check is None:
                raise mosek_search.ProbeUnavailable('python')
            try:
                check()
            except Errors.ConfigurationError as e:
                self.ctx.to_log('Python version probe failed: %s' % e)
                return None
        return env.PYTHON_VERSION or None

    def dump_variables(self, cfg):
        dump = ConfigSet()
        for name, value in mosek_search.variables(cfg).items():
            if value is not None:
                dump[name] = value
        path = os.path.join(self.ctx.bldnode.abspath(), 'mosek_variables.py')
        dump.store(path)
        self.ctx.to_log('MOSEK variables written to %s' % path)


def _value(*values):
    for v in values:
        if v is not None and v != [] and v != '':
            return v
    return None


def pointer_bits(self):
    cpu = self.env.DEST_CPU
    if not cpu:
        return struct.calcsize('P') * 8
    return 64 if cpu in CPU_64 or cpu.endswith('64') else 32


def read_config(self):
    env = self.env
    opts = self.options

    def opt(name):
        return getattr(opts, name, None)

    return mosek_search.MosekConfig(
        install_root=_value(opt('mosek'), env.MOSEK_DIR),
        matlab=_value(opt('mosek_matlab'), env.MOSEK_MATLAB),
        java=_value(opt('mosek_java'), env.MOSEK_JAVA),
        python=_value(opt('mosek_python'), env.MOSEK_PYTHON),
        no_omp=_value(opt('mosek_no_omp'), env.MOSEK_NO_OMP),
        matlab_found=bool(env.MATLAB),
        debug=bool(opt('mosek_debug')),
        dest_os=env.DEST_OS or Utils.unversioned_sys_platform(),
        pointer_bits=pointer_bits(self),
        tools_suffix=_value(opt('mosek_tools_suffix'), env.MOSEK_TOOLS_SUFFIX),
        toolbox_suffix=_value(env.MOSEK_TOOLBOX_SUFFIX),
        matlab_release=_value(opt('matlab_release'), env.MATLAB_RELEASE),
        mex_ext=_value(opt('mex_ext'), env.MEX_EXT),
        python_version=_value(opt('mosek_python_version'), env.MOSEK_PYTHON_VERSION),
        python_version_major=_value(env.MOSEK_PYTHON_VERSION_MAJOR),
        include_dir=_value(env.MOSEK_INCLUDE_DIR),
        library=_value(env.MOSEK_LIBRARY),
        library_name=_value(env.MOSEK_LIBRARY_NAME),
        mex_file=_value(env.MOSEK_mosekopt_MEX),
        jar_file=_value(env.MOSEK_mosek_JAR),
        python_path=_value(env.MOSEK_PYTHONPATH),
    )


def write_config(self, cfg):
    for name, value in mosek_search.variables(cfg).items():
        if value is not None:
            self.env[name] = value
    if cfg.found:
        self.env.INCLUDES_MOSEK = list(cfg.includes)
        self.env.LIBPATH_MOSEK = [os.path.dirname(cfg.library)]
        self.env.LIB_MOSEK = [cfg.library_name]


def _check(self, cfg, probes, kind, msg, find, quiet):
    dirs = mosek_search.candidate_dirs(cfg, kind)
    self.to_log('%s in %s' % (msg, str(dirs)))
    if not quiet:
        self.start_msg(msg)
    res = find(cfg, probes=probes)
    if not quiet:
        if res:
            self.end_msg(res)
        else:
            self.end_msg('Not found in %s' % str(dirs), 'YELLOW')
    return res


@conf
def check_mosek(self, *k, **kw):
    required = kw.get('required', False)
    quiet = kw.get('quiet', False)

    cfg = read_config(self)
    probes = WafProbes(self)
    try:
        mosek_search.resolve_inputs(cfg, probes=probes)
    except mosek_search.MosekConfigError as e:
        self.fatal(str(e))
    mosek_search.derive_suffixes(cfg)
    if cfg.toolbox_versions:
        self.to_log('MOSEK toolbox versions: %s, using %s' % (', '.join(cfg.toolbox_versions), cfg.toolbox_suffix))

    _check(self, cfg, probes, 'include', 'Checking MOSEK includes', mosek_search.find_include_dir, quiet)
    _check(self, cfg, probes, 'library', 'Checking MOSEK libs', mosek_search.find_library, quiet)
    if cfg.matlab:
        _check(self, cfg, probes, 'mex', 'Checking MOSEK MATLAB toolbox', mosek_search.find_mex_file, quiet)
    if cfg.java:
        _check(self, cfg, probes, 'jar', 'Checking MOSEK Java library', mosek_search.find_jar_file, quiet)
    if cfg.python:
        _check(self, cfg, probes, 'python', 'Checking MOSEK Python modules', mosek_search.find_python_path, quiet)

    mosek_search.aggregate(cfg)
    if cfg.debug:
        mosek_search.dump_variables(cfg, probes)
    mosek_search.validate(cfg)
    mosek_search.derive_install_root(cfg)
    write_config(self, cfg)

    if not cfg.found:
        missing = ', '.join(mosek_search.variable_name(attr) for attr in cfg.missing)
        if required:
            self.fatal('Could not find MOSEK (missing: %s)' % missing)
        if not quiet:
            self.msg('Checking for MOSEK', 'not found (missing: %s)' % missing, color='YELLOW')
        return False

    if not quiet:
        self.msg('Checking for MOSEK', cfg.install_root or cfg.include_dir)
    return True
