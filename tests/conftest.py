"""Shared fixtures: synthetic counter files in a throwaway directory."""

import tempfile
from pathlib import Path

import pytest

STAT = """\
cpu  10132153 290696 3084719 46828483 16683 0 25195 0 175628 0
cpu0 1393280 32966 572056 13343292 6130 0 17875 0 23933 0
cpu1 1335000 32000 500000 13000000 5000 0 5000 0 20000 0
intr 114930548 113199788 3 0 5 263 0 4 0 0 0 0 0 0
ctxt 1990473
btime 1062191376
processes 2915
procs_running 1
procs_blocked 0
softirq 183433 0 21755 12 39 0 0 0 0 0 161627
"""

MEMINFO = """\
MemTotal:       16307664 kB
MemFree:         1234567 kB
MemAvailable:    8153832 kB
Buffers:          345678 kB
Cached:          5678901 kB
SwapCached:            0 kB
Active:          6543210 kB
Inactive:        4321098 kB
Active(anon):    3210987 kB
Inactive(anon):   123456 kB
Active(file):    3332223 kB
Inactive(file):  4197642 kB
SwapTotal:       2097148 kB
SwapFree:        2097148 kB
Committed_AS:    9876543 kB
HugePages_Total:       4
Hugepagesize:       2048 kB
DirectMap1G:     2097152 kB
"""

DISKSTATS = """\
   8       0 sda 3000 100 24000 1500 2000 50 16000 900 2 2400 2500
   8       1 sda1 1000 10 8000 500 500 5 4000 200 0 700 700 0 0 0 0 10 20
"""

NET_DEV = """\
Inter-|   Receive                                                |  Transmit
 face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed
    lo:    1000      10    0    0    0     0          0         0     1000      10    0    0    0     0       0          0
  eth0:12345678    9000    1    2    0     0          0        30  2345678    7000    0    0    0     0       0          0
"""

LOADAVG = "0.20 0.18 0.12 1/80 11206\n"

UPTIME = "350735.47 234388.90\n"

VERSION = (
    "Linux version 6.5.0-14-generic (buildd@lcy02-amd64-110) "
    "(x86_64-linux-gnu-gcc-12 (Ubuntu 12.3.0-1ubuntu1~23.04) 12.3.0, GNU ld (GNU Binutils for Ubuntu) 2.40) "
    "#14-Ubuntu SMP PREEMPT_DYNAMIC Tue Nov 14 14:59:49 UTC 2023\n"
)

OS_RELEASE = """\
NAME="Ubuntu"
VERSION="22.04.3 LTS (Jammy Jellyfish)"
ID=ubuntu
ID_LIKE=debian
PRETTY_NAME="Ubuntu 22.04.3 LTS"
VERSION_ID="22.04"
HOME_URL="https://www.ubuntu.com/"
BUG_REPORT_URL="https://bugs.launchpad.net/ubuntu/"
# not a key
UBUNTU_CODENAME=jammy
"""

_CPU_BLOCK = """\
processor\t: {processor}
vendor_id\t: GenuineIntel
cpu family\t: 6
model\t\t: 61
model name\t: Intel(R) Core(TM) i7-5600U CPU @ 2.60GHz
stepping\t: 4
microcode\t: 0x2f
cpu MHz\t\t: {mhz}
cache size\t: 4096 KB
physical id\t: {physical_id}
siblings\t: 2
core id\t\t: 0
cpu cores\t: 1
apicid\t\t: {processor}
initial apicid\t: {processor}
fpu\t\t: yes
fpu_exception\t: yes
cpuid level\t: 20
wp\t\t: yes
flags\t\t: fpu vme de pse tsc msr
bugs\t\t:
bogomips\t: 5187.81
clflush size\t: 64
cache_alignment\t: 64
address sizes\t: 39 bits physical, 48 bits virtual
power management:

"""

# Two sockets with one hyper-threaded core each.
CPUINFO = "".join(
    _CPU_BLOCK.format(processor=n, mhz=mhz, physical_id=n // 2)
    for n, mhz in enumerate(["2600.000", "2394.125", "800.000", "1200.500"])
)

SYS_FILES = {
    "devices/system/node/node0/cpulist": "0-1\n",
    "devices/system/node/node1/cpulist": "2-3\n",
    "devices/system/cpu/cpu0/cpufreq/cpuinfo_min_freq": "800000\n",
    "devices/system/cpu/cpu0/cpufreq/cpuinfo_max_freq": "3200000\n",
    "devices/system/cpu/cpu2/cpufreq/cpuinfo_max_freq": "2600000\n",
}

PROC_FILES = {
    "cpuinfo": CPUINFO,
    "stat": STAT,
    "meminfo": MEMINFO,
    "diskstats": DISKSTATS,
    "net/dev": NET_DEV,
    "loadavg": LOADAVG,
    "uptime": UPTIME,
    "version": VERSION,
}


def write_file(root: Path, name: str, content: str) -> Path:
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


@pytest.fixture
def proc_root():
    """A directory laid out like /proc holding every supported counter file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        for name, content in PROC_FILES.items():
            write_file(root, name, content)
        yield root


@pytest.fixture
def etc_root():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        write_file(root, "os-release", OS_RELEASE)
        yield root


@pytest.fixture
def sys_root():
    """A directory laid out like /sys with two NUMA nodes and partial cpufreq."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        for name, content in SYS_FILES.items():
            write_file(root, name, content)
        yield root
