import pytest

from vmrunkit.osprober import (
    DEBIAN_CODES,
    UBUNTU_CODES,
    CentosReleaseProber,
    DebianVersionProber,
    OsReleaseProber,
    probe,
    ver_by_code,
)


def _write(root, name, text):
    etc = root / "etc"
    etc.mkdir(exist_ok=True)
    (etc / name).write_text(text)


def test_ver_by_code():
    assert ver_by_code(DEBIAN_CODES, "Jessie") == "8"
    assert ver_by_code(UBUNTU_CODES, "Focal Fossa") == "20.04"
    assert ver_by_code(DEBIAN_CODES, "nothing") == ""


def test_os_release_debian(tmp_path):
    _write(
        tmp_path,
        "os-release",
        'PRETTY_NAME="Debian GNU/Linux 10 (buster)"\nNAME="Debian GNU/Linux"\nVERSION_ID="10"\nID=debian\n',
    )
    info = OsReleaseProber().probe(str(tmp_path))
    assert info.source == "os-release"
    assert info.family == "debian"
    assert info.distrib == "debian"
    assert info.version == "10"
    assert info.codename == DEBIAN_CODES["10"]
    assert info.name == "Debian GNU/Linux"
    assert info.pretty_name == "Debian GNU/Linux 10 (buster)"


def test_os_release_explicit_codename_is_lowered(tmp_path):
    _write(tmp_path, "os-release", "ID=debian\nVERSION_ID=10\nVERSION_CODENAME=Buster\n")
    assert OsReleaseProber().probe(str(tmp_path)).codename == "buster"


def test_os_release_ubuntu(tmp_path):
    _write(tmp_path, "os-release", 'ID=ubuntu\nVERSION_ID="20.04"\n')
    info = OsReleaseProber().probe(str(tmp_path))
    assert info.family == "ubuntu"
    assert info.codename == UBUNTU_CODES["20.04"]


def test_os_release_opensuse(tmp_path):
    _write(tmp_path, "os-release", 'ID="opensuse-leap"\nVERSION_ID="15.2"\n')
    info = OsReleaseProber().probe(str(tmp_path))
    assert info.family == "opensuse"
    assert info.distrib == "opensuse-leap"
    assert info.codename == "15"


def test_os_release_sangoma_is_centos(tmp_path):
    _write(tmp_path, "os-release", "ID=sangoma\n")
    assert OsReleaseProber().probe(str(tmp_path)).family == "centos"


def test_debian_version_numeric(tmp_path):
    _write(tmp_path, "debian_version", "10.5\n")
    info = DebianVersionProber().probe(str(tmp_path))
    assert info.version == "10"
    assert info.codename == DEBIAN_CODES["10"]
    assert info.pretty_name == f"Debian GNU/Linux 10 ({DEBIAN_CODES['10']})"
    assert info.source == "debian_version"


def test_debian_version_testing(tmp_path):
    _write(tmp_path, "debian_version", "bullseye/sid\n")
    info = DebianVersionProber().probe(str(tmp_path))
    assert info.version == "bullseye"
    assert info.codename == ""


def test_centos_release(tmp_path):
    _write(tmp_path, "centos-release", "CentOS Linux release 7.9.2009 (Core)\n")
    info = CentosReleaseProber().probe(str(tmp_path))
    assert info.version == "7"
    assert info.family == "centos"
    assert info.pretty_name == "centos linux release 7.9.2009 (core)"


def test_prober_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        CentosReleaseProber().probe(str(tmp_path))


def test_probe_prefers_os_release(tmp_path):
    _write(tmp_path, "debian_version", "9.13\n")
    _write(tmp_path, "os-release", "ID=ubuntu\nVERSION_ID=18.04\n")
    info = probe(str(tmp_path))
    assert info.source == "os-release"
    assert info.family == "ubuntu"


def test_probe_falls_back(tmp_path):
    _write(tmp_path, "debian_version", "9.13\n")
    info = probe(str(tmp_path))
    assert info.source == "debian_version"
    assert info.version == "9"


def test_probe_nothing_found(tmp_path):
    assert probe(str(tmp_path)) is None