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
MOSEK package detection

Search rules for an installed MOSEK (http://www.mosek.com) tree: include
directory, link library and the optional MATLAB, Java and Python components.
Nothing here depends on waf; the configuration method lives in mosek_tool.py.

The detection runs in four phases over one MosekConfig:

    resolve_inputs    toggles, MATLAB release, MEX extension, Python version
    derive_suffixes   tools/toolbox path suffixes and library candidate names
    search_artifacts  header, library, mosekopt MEX-file, mosek.jar, python dir
    validate          required variables, found flag, install root
"""

import fnmatch
import os
import re
from dataclasses import dataclass, field
from typing import List, Optional, Set

HEADER = 'mosek.h'
LIBRARY_NAME = 'mosek'
# versioned library names of the Windows packages
LIBRARY_VERSIONS = ('6_0',)
MEX_NAME = 'mosekopt'
JAR_NAME = 'mosek.jar'
PYTHON_MODULE = 'mosek/array.py'

DEFAULT_MATLAB_RELEASE = 'R2009b'
# only right on 64-bit Linux
DEFAULT_MEX_EXT = 'mexa64'
DEFAULT_PYTHON_VERSION = '2.6'

INCLUDE_DIRS = ['/usr/local/include', '/usr/include', '/opt/local/include', '/sw/include', '/opt/homebrew/include']
LIBRARY_DIRS = ['/usr/lib', '/usr/local/lib64', '/usr/local/lib', '/opt/local/lib', '/sw/lib', '/lib', '/usr/lib64', '/usr/lib/x86_64-linux-gnu/', '/usr/local/lib/x86_64-linux-gnu/', '/usr/lib/aarch64-linux-gnu/', '/usr/local/lib/aarch64-linux-gnu/', '/opt/homebrew/lib']
PREFIXES = ['/usr/local', '/usr', '/opt/local', '/opt', '/sw', '/opt/homebrew']

HINT_VARS = {
    'include': ['C_INCLUDE_PATH', 'CPLUS_INCLUDE_PATH', 'CXX_INCLUDE_PATH'],
    'library': ['LD_LIBRARY_PATH', 'DYLD_LIBRARY_PATH', 'LIBRARY_PATH'],
    'mex': [],
    'jar': ['CLASSPATH'],
    'python': ['PYTHONPATH'],
}
WINDOWS_HINT_VARS = {
    'include': ['INCLUDE'],
    'library': ['LIB', 'PATH'],
}

# MosekConfig field -> configuration variable
VARIABLES = [
    ('install_root', 'MOSEK_DIR'),
    ('matlab', 'MOSEK_MATLAB'),
    ('java', 'MOSEK_JAVA'),
    ('python', 'MOSEK_PYTHON'),
    ('no_omp', 'MOSEK_NO_OMP'),
    ('tools_suffix', 'MOSEK_TOOLS_SUFFIX'),
    ('toolbox_suffix', 'MOSEK_TOOLBOX_SUFFIX'),
    ('matlab_release', 'MATLAB_RELEASE'),
    ('mex_ext', 'MEX_EXT'),
    ('python_version', 'MOSEK_PYTHON_VERSION'),
    ('python_version_major', 'MOSEK_PYTHON_VERSION_MAJOR'),
    ('library_names', 'MOSEK_LIBRARY_NAMES'),
    ('library_name', 'MOSEK_LIBRARY_NAME'),
    ('include_dir', 'MOSEK_INCLUDE_DIR'),
    ('library', 'MOSEK_LIBRARY'),
    ('mex_file', 'MOSEK_mosekopt_MEX'),
    ('jar_file', 'MOSEK_mosek_JAR'),
    ('python_path', 'MOSEK_PYTHONPATH'),
    ('includes', 'MOSEK_INCLUDES'),
    ('includes', 'MOSEK_INCLUDE_DIRS'),
    ('libraries', 'MOSEK_LIBRARIES'),
    ('mex_files', 'MOSEK_MEX_FILES'),
    ('classpath', 'MOSEK_CLASSPATH'),
    ('found', 'MOSEK_FOUND'),
]


class MosekConfigError(Exception):
    """A piece of information without a safe default could not be determined"""


class ProbeUnavailable(Exception):
    """The host has no way to answer a probe"""


class Probes:
    """Host probes used while resolving the inputs and searching for files.

    Every version probe raises ProbeUnavailable unless a subclass implements
    it. A probe that is implemented but has nothing to report returns None.
    find_file is the only one with a working default, a plain existence check
    used when no build system is involved.
    """

    def find_file(self, names, dirs):
        """First existing <dir>/<name>, names tried in order over all dirs, None if there is none"""
        for name in names:
            for d in dirs:
                path = os.path.join(d, name)
                if os.path.isfile(path):
                    return path
        return None

    def matlab_release(self):
        raise ProbeUnavailable('matlab_release')

    def mex_ext(self):
        raise ProbeUnavailable('mex_ext')

    def python_version(self):
        raise ProbeUnavailable('python_version')

    def dump_variables(self, cfg):
        raise ProbeUnavailable('dump_variables')


_RELEASE_RE = re.compile(r'r([0-9]+)([ab])', re.I)


@dataclass(frozen=True, order=True)
class MatlabRelease:
    year: int
    half: str

    @classmethod
    def parse(cls, text):
        """'R2015a' -> MatlabRelease(2015, 'a'), None if there is no release tag in text"""
        m = _RELEASE_RE.search(text or '')
        if not m:
            return None
        return cls(int(m.group(1)), m.group(2).lower())

    def __str__(self):
        return 'R%d%s' % (self.year, self.half)


def release_year(release):
    parsed = MatlabRelease.parse(release)
    if parsed:
        return parsed.year
    # anything else, e.g. '2015', use the first run of digits
    m = re.search(r'[0-9]+', release or '')
    return int(m.group(0)) if m else None


def python_major(version):
    m = re.match(r'\s*([0-9]+)', version)
    return m.group(1) if m else version


@dataclass
class MosekConfig:
    install_root: Optional[str] = None
    matlab: Optional[bool] = None
    java: Optional[bool] = None
    python: Optional[bool] = None
    no_omp: Optional[bool] = None
    matlab_found: bool = False
    debug: bool = False

    dest_os: str = 'linux'
    pointer_bits: int = 64

    tools_suffix: Optional[str] = None
    toolbox_suffix: Optional[str] = None
    matlab_release: Optional[str] = None
    mex_ext: Optional[str] = None
    python_version: Optional[str] = None
    python_version_major: Optional[str] = None
    library_names: List[str] = field(default_factory=list)
    toolbox_versions: List[str] = field(default_factory=list)

    include_dir: Optional[str] = None
    library: Optional[str] = None
    library_name: Optional[str] = None
    mex_file: Optional[str] = None
    jar_file: Optional[str] = None
    python_path: Optional[str] = None

    includes: List[str] = field(default_factory=list)
    libraries: List[str] = field(default_factory=list)
    mex_files: List[str] = field(default_factory=list)
    classpath: List[str] = field(default_factory=list)

    found: bool = False
    missing: List[str] = field(default_factory=list)
    advanced: Set[str] = field(default_factory=set)


def variables(cfg):
    return dict((var, getattr(cfg, attr)) for attr, var in VARIABLES)


def variable_name(attr):
    for a, var in VARIABLES:
        if a == attr:
            return var
    return attr


def is_windows(dest_os):
    return dest_os == 'win32'


# ----------------------------------------------------------------------------
# input resolution

def _probe(probe, default, error=None):
    try:
        value = probe()
    except ProbeUnavailable:
        return default
    if not value:
        if error:
            raise MosekConfigError(error)
        return default
    return value


def resolve_inputs(cfg, environ=None, probes=None):
    """Fill in every input of cfg that is not set yet"""
    if environ is None:
        environ = os.environ
    if probes is None:
        probes = Probes()

    if not cfg.install_root:
        cfg.install_root = environ.get('MOSEK_DIR') or None

    if cfg.matlab is None:
        cfg.matlab = bool(cfg.matlab_found)
    if cfg.java is None:
        cfg.java = False
    if cfg.python is None:
        cfg.python = False
    if cfg.no_omp is None:
        cfg.no_omp = False

    if cfg.matlab:
        if not cfg.matlab_release:
            cfg.matlab_release = _probe(probes.matlab_release, DEFAULT_MATLAB_RELEASE,
                                        'Failed to determine release version of MATLAB installation. '
                                        'This information is required to be able to find the right MOSEK MEX-files. '
                                        'Set MATLAB_RELEASE manually and try again.')
        if not cfg.mex_ext:
            cfg.mex_ext = _probe(probes.mex_ext, DEFAULT_MEX_EXT)

    if cfg.python:
        if not cfg.python_version:
            cfg.python_version = _probe(probes.python_version, DEFAULT_PYTHON_VERSION,
                                        'Failed to determine version of Python installation. '
                                        'This information is required to be able to find the right MOSEK Python modules. '
                                        'Set PYTHON_VERSION manually and try again.')
        if not cfg.python_version_major:
            cfg.python_version_major = python_major(cfg.python_version)

    return cfg


# ----------------------------------------------------------------------------
# path suffixes and library names

def tools_suffix(dest_os, pointer_bits):
    if is_windows(dest_os):
        system = 'win'
    elif dest_os == 'darwin':
        system = 'osx'
    else:
        system = 'linux'
    bits = '32' if pointer_bits == 32 else '64'
    return 'tools/platform/%s%sx86' % (system, bits)


def toolbox_versions(install_root):
    """Names of the toolbox/<version> directories which contain MEX-files"""
    toolbox = os.path.join(install_root, 'toolbox')
    versions = set()
    for root, dirnames, filenames in os.walk(toolbox):
        if not fnmatch.filter(filenames, '*.mex*'):
            continue
        rel = os.path.relpath(root, toolbox)
        if rel == os.curdir:
            continue
        versions.add(rel.split(os.sep)[0])
    return versions


def select_toolbox_version(versions, release):
    """Newest toolbox version built for a MATLAB release not newer than release"""
    year = release_year(release)
    if year is None:
        return None
    parsed = []
    for version in versions:
        tag = MatlabRelease.parse(version)
        if tag is not None:
            parsed.append((tag, version))
    for tag, version in sorted(parsed, reverse=True):
        if tag.year <= year:
            return version
    return None


def library_names(no_omp, dest_os, pointer_bits):
    name = LIBRARY_NAME
    if no_omp:
        name += 'noomp'
    if not is_windows(dest_os) and pointer_bits != 32:
        name += '64'
    names = [name]
    if is_windows(dest_os):
        names += [name + version for version in LIBRARY_VERSIONS]
    return names


def library_filenames(name, dest_os):
    if is_windows(dest_os):
        return [name + '.lib']
    if dest_os == 'darwin':
        return ['lib' + name + '.dylib', 'lib' + name + '.a']
    return ['lib' + name + '.so', 'lib' + name + '.a']


def derive_suffixes(cfg):
    if not cfg.tools_suffix:
        cfg.tools_suffix = tools_suffix(cfg.dest_os, cfg.pointer_bits)

    if cfg.matlab and not cfg.toolbox_suffix:
        version = None
        if cfg.install_root:
            cfg.toolbox_versions = sorted(toolbox_versions(cfg.install_root))
            version = select_toolbox_version(cfg.toolbox_versions, cfg.matlab_release)
        if version:
            cfg.toolbox_suffix = 'toolbox/' + version
        else:
            cfg.toolbox_suffix = 'toolbox/' + cfg.matlab_release.lower()

    cfg.library_names = library_names(cfg.no_omp, cfg.dest_os, cfg.pointer_bits)
    return cfg


# ----------------------------------------------------------------------------
# artifact search

def _split(value, dest_os):
    # search path variables follow the target OS
    sep = ';' if is_windows(dest_os) else os.pathsep
    return [p for p in (value or '').split(sep) if p]


def _unique(dirs):
    seen = set()
    res = []
    for d in dirs:
        if d not in seen:
            seen.add(d)
            res.append(d)
    return res


def _suffix(cfg, kind):
    if kind == 'include':
        return cfg.tools_suffix + '/h'
    if kind in ('library', 'jar'):
        return cfg.tools_suffix + '/bin'
    if kind == 'mex':
        return cfg.toolbox_suffix
    if kind == 'python':
        return '%s/python/%s' % (cfg.tools_suffix, cfg.python_version_major)
    raise ValueError('unknown artifact kind %r' % kind)


def _rooted(install_root, suffix):
    # the root is authoritative, no system directories
    return [os.path.join(install_root, suffix), install_root]


def _unrooted(cfg, kind, environ):
    hint_vars = HINT_VARS[kind]
    if is_windows(cfg.dest_os):
        hint_vars = WINDOWS_HINT_VARS.get(kind, hint_vars)

    dirs = []
    for var in hint_vars:
        for entry in _split(environ.get(var), cfg.dest_os):
            if kind == 'jar' and entry.endswith('.jar'):
                entry = os.path.dirname(entry)
            dirs.append(entry)

    if is_windows(cfg.dest_os):
        defaults = []
    elif kind == 'include':
        defaults = INCLUDE_DIRS
    elif kind == 'library':
        defaults = LIBRARY_DIRS
    elif kind == 'jar':
        defaults = [os.path.join(p, 'share', 'java') for p in PREFIXES]
    elif kind == 'mex':
        defaults = PREFIXES
    else:
        defaults = []
    dirs.extend(defaults)

    if kind == 'mex':
        suffix = _suffix(cfg, kind)
        dirs = [os.path.join(d, s) for d in dirs for s in (suffix, '')]
    return dirs


def candidate_dirs(cfg, kind, environ=None):
    """Ordered directories searched for an artifact kind (include, library, mex, jar, python)"""
    if environ is None:
        environ = os.environ
    if cfg.install_root:
        dirs = _rooted(cfg.install_root, _suffix(cfg, kind))
    else:
        dirs = _unrooted(cfg, kind, environ)
    return _unique([os.path.normpath(d) for d in dirs])


def _get_directory(probes, filename, dirs):
    res = probes.find_file([filename], dirs)
    if res is None:
        return None
    return res[:-len(filename)-1]


_LIBRARY_EXT_RE = re.compile(r'^(.+?)\.(so|dylib|a|lib)(\..*)?$')


def library_name_of(path, dest_os):
    """Link name of a library file, 'libmosek64.so.10.1' -> 'mosek64'"""
    name = os.path.basename(path)
    m = _LIBRARY_EXT_RE.match(name)
    name = m.group(1) if m else os.path.splitext(name)[0]
    if not is_windows(dest_os) and name.startswith('lib'):
        name = name[3:]
    return name


def find_include_dir(cfg, environ=None, probes=None):
    if not cfg.include_dir:
        cfg.include_dir = _get_directory(probes or Probes(), HEADER, candidate_dirs(cfg, 'include', environ))
    cfg.advanced.add('include_dir')
    return cfg.include_dir


def find_library(cfg, environ=None, probes=None):
    if not cfg.library:
        probes = probes or Probes()
        dirs = candidate_dirs(cfg, 'library', environ)
        for name in cfg.library_names:
            path = probes.find_file(library_filenames(name, cfg.dest_os), dirs)
            if path:
                cfg.library = path
                cfg.library_name = name
                break
    elif not cfg.library_name:
        cfg.library_name = library_name_of(cfg.library, cfg.dest_os)
    cfg.advanced.add('library')
    return cfg.library


def find_mex_file(cfg, environ=None, probes=None):
    if not cfg.matlab:
        return None
    if not cfg.mex_file:
        probes = probes or Probes()
        cfg.mex_file = probes.find_file(['%s.%s' % (MEX_NAME, cfg.mex_ext)], candidate_dirs(cfg, 'mex', environ))
    cfg.advanced.add('mex_file')
    return cfg.mex_file


def find_jar_file(cfg, environ=None, probes=None):
    if not cfg.java:
        return None
    if not cfg.jar_file:
        probes = probes or Probes()
        cfg.jar_file = probes.find_file([JAR_NAME], candidate_dirs(cfg, 'jar', environ))
    cfg.advanced.add('jar_file')
    return cfg.jar_file


def find_python_path(cfg, environ=None, probes=None):
    if not cfg.python:
        return None
    if not cfg.python_path:
        cfg.python_path = _get_directory(probes or Probes(), os.path.normpath(PYTHON_MODULE),
                                         candidate_dirs(cfg, 'python', environ))
    cfg.advanced.add('python_path')
    return cfg.python_path


def search_artifacts(cfg, environ=None, probes=None):
    if probes is None:
        probes = Probes()
    find_include_dir(cfg, environ, probes)
    find_library(cfg, environ, probes)
    find_mex_file(cfg, environ, probes)
    find_jar_file(cfg, environ, probes)
    find_python_path(cfg, environ, probes)
    return cfg

# ----------------------------------------------------------------------------
# aggregation and validation

def aggregate(cfg):
    # prerequisite libraries would be appended here
    cfg.includes = [cfg.include_dir] if cfg.include_dir else []
    cfg.libraries = [cfg.library] if cfg.library else []
    cfg.mex_files = [cfg.mex_file] if cfg.matlab and cfg.mex_file else []
    cfg.classpath = [cfg.jar_file] if cfg.java and cfg.jar_file else []
    return cfg


def required_vars(cfg):
    required = ['include_dir', 'library']
    if cfg.matlab:
        required.append('mex_file')
    if cfg.java:
        required.append('jar_file')
    if cfg.python:
        required.append('python_path')
    return required


def validate(cfg):
    cfg.missing = [attr for attr in required_vars(cfg) if not getattr(cfg, attr)]
    cfg.found = not cfg.missing
    return cfg.found


def derive_install_root(cfg):
    """Set install_root from the include directory after a successful unrooted search"""
    if cfg.install_root or not cfg.found:
        return cfg.install_root
    tail = os.path.normpath(cfg.tools_suffix + '/h')
    include_dir = os.path.normpath(cfg.include_dir)
    if include_dir.endswith(os.sep + tail):
        cfg.install_root = include_dir[:-len(tail)-1] or os.sep
    return cfg.install_root


def dump_variables(cfg, probes):
    try:
        probes.dump_variables(cfg)
    except ProbeUnavailable:
        pass


def find_mosek(cfg, environ=None, probes=None):
    """Run all phases on cfg; raises MosekConfigError, reports missing artifacts in cfg.missing"""
    if probes is None:
        probes = Probes()
    resolve_inputs(cfg, environ, probes)
    derive_suffixes(cfg)
    search_artifacts(cfg, environ, probes)
    aggregate(cfg)
    if cfg.debug:
        dump_variables(cfg, probes)
    validate(cfg)
    derive_install_root(cfg)
    return cfg
