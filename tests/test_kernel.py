"""Tests for /proc/version and /etc/os-release parsing."""

import pytest

from proc_snap.collector.kernel import KernelCollector, arch_of, parse_version
from proc_snap.collector.release import OsReleaseCollector, parse_os_release

from conftest import OS_RELEASE, VERSION


class TestKernel:
    def test_modern_ubuntu(self):
        result = parse_version(VERSION.encode(), 0)
        assert result.ok
        k = result.value
        assert k.os == "linux"
        assert k.version == "6.5.0-14-generic"
        assert k.arch == "generic"
        assert k.compile_user == "buildd@lcy02-amd64-110"
        assert k.gcc == "x86_64-linux-gnu-gcc-12 12.3.0"
        assert k.os_gcc == "Ubuntu 12.3.0-1ubuntu1~23.04"
        assert k.type == "#14-Ubuntu SMP PREEMPT_DYNAMIC"
        assert k.compile_date == "Tue Nov 14 14:59:49 UTC 2023"

    def test_older_gcc_format(self):
        line = (
            b"Linux version 4.4.0-31-generic (buildd@lgw01-16) "
            b"(gcc version 5.3.1 20160413 (Ubuntu 5.3.1-14ubuntu2.1) ) "
            b"#52-Ubuntu SMP Fri Jul 8 10:20:00 UTC 2016\n"
        )
        k = parse_version(line, 0).value
        assert k.version == "4.4.0-31-generic"
        assert k.gcc == "gcc version 5.3.1 20160413"
        assert k.os_gcc == "Ubuntu 5.3.1-14ubuntu2.1"
        assert k.type == "#52-Ubuntu SMP"
        assert k.compile_date == "Fri Jul 8 10:20:00 UTC 2016"

    def test_debian_date_in_parens(self):
        line = (
            b"Linux version 4.19.0-18-amd64 (debian-kernel@lists.debian.org) "
            b"(gcc version 8.3.0 (Debian 8.3.0-6)) #1 SMP Debian 4.19.208-1 (2021-09-29)\n"
        )
        result = parse_version(line, 0)
        assert result.ok
        k = result.value
        assert k.arch == "amd64"
        assert k.os_gcc == "Debian 8.3.0-6"
        assert k.type == "#1 SMP Debian 4.19.208-1"
        assert k.compile_date == "2021-09-29"

    def test_no_compiler_group(self):
        result = parse_version(b"Linux version 5.10.0 (root@host)\n", 0)
        assert [e.field for e in result.errors] == ["gcc"]
        assert result.value.compile_user == "root@host"
        assert result.value.version == "5.10.0"

    def test_empty(self):
        result = parse_version(b"", 0)
        assert not result.ok

    @pytest.mark.parametrize(
        "version,arch",
        [("6.5.0-14-generic", "generic"), ("5.15.0-1051-aws", "aws"), ("6.1.0", "")],
    )
    def test_arch_of(self, version, arch):
        assert arch_of(version) == arch

    def test_collector(self, proc_root):
        with KernelCollector(proc_root / "version") as collector:
            assert collector.name == "kernel"
            assert collector.collect().value.version == "6.5.0-14-generic"


class TestOsRelease:
    def test_parse(self):
        result = parse_os_release(OS_RELEASE.encode(), 0)
        assert result.ok
        r = result.value
        assert r.name == "Ubuntu"
        assert r.id == "ubuntu"
        assert r.id_like == "debian"
        assert r.pretty_name == "Ubuntu 22.04.3 LTS"
        assert r.version == "22.04.3 LTS (Jammy Jellyfish)"
        assert r.version_id == "22.04"
        assert r.home_url == "https://www.ubuntu.com/"
        assert r.bug_report_url == "https://bugs.launchpad.net/ubuntu/"

    def test_single_quotes_and_blanks(self):
        text = b"\n  # comment\nID='fedora'\nVERSION_ID=39\nnonsense\n"
        r = parse_os_release(text, 0).value
        assert r.id == "fedora"
        assert r.version_id == "39"
        assert r.name == ""

    def test_collector(self, etc_root):
        with OsReleaseCollector(etc_root / "os-release") as collector:
            assert collector.name == "os_release"
            assert collector.collect().value.id == "ubuntu"
