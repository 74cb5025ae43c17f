import pytest

from riskscanner.core.domain.exceptions import ScanError, ScanErrorKind
from riskscanner.core.domain.models import BuildTool
from riskscanner.infra.scanning import BuildFileScanner, GradleScriptParser, MavenRepository, MavenResolver, find_descriptor

from maven_fakes import REPO, FakeMavenRepo, dep, deps, pom

GRADLE = 'dependencies {\n    implementation "com.google.guava:guava:32.1.2-jre"\n}\n'


@pytest.fixture
def scanner(tmp_path):
    repository = MavenRepository(
        client=FakeMavenRepo().client(),
        remote_urls=[REPO],
        local_repository=None,
        cache_dir=tmp_path / "pom-cache",
    )
    return BuildFileScanner(
        maven=MavenResolver(repository=repository, transitive=False),
        gradle=GradleScriptParser(),
    )


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    return root


def test_find_descriptor_prefers_maven(project):
    (project / "build.gradle").write_text(GRADLE)
    (project / "pom.xml").write_text(pom("g", "a", "1"))
    assert find_descriptor(project) == project / "pom.xml"


def test_find_descriptor_kotlin_script(project):
    (project / "build.gradle.kts").write_text(GRADLE)
    assert find_descriptor(project) == project / "build.gradle.kts"


def test_find_descriptor_accepts_file_path(project):
    target = project / "build.gradle"
    target.write_text(GRADLE)
    assert find_descriptor(target) == target


def test_find_descriptor_rejects_other_files(project):
    other = project / "settings.gradle"
    other.write_text("")
    assert find_descriptor(other) is None
    assert find_descriptor(project / "missing") is None


def test_scan_maven(scanner, project):
    (project / "pom.xml").write_text(pom("g", "a", "1", body=deps(dep("org.slf4j", "slf4j-api", "2.0.7"))))

    result = scanner.scan(project)

    assert result.build_tool is BuildTool.MAVEN
    assert [c.id for c in result.coordinates] == ["org.slf4j:slf4j-api:2.0.7"]


def test_scan_gradle(scanner, project):
    (project / "build.gradle").write_text(GRADLE)

    result = scanner.scan(str(project))

    assert result.build_tool is BuildTool.GRADLE
    assert result.confidence.best_effort is True
    assert [c.id for c in result.coordinates] == ["com.google.guava:guava:32.1.2-jre"]


def test_scan_empty_folder(scanner, project):
    with pytest.raises(ScanError) as exc:
        scanner.scan(project)
    assert exc.value.kind is ScanErrorKind.NOT_FOUND
    assert exc.value.path == str(project)
