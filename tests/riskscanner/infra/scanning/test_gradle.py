"""Tests for Gradle build script extraction."""
import pytest

from riskscanner.core.domain.exceptions import ScanError, ScanErrorKind
from riskscanner.core.domain.models import BuildTool, ConfidenceLevel
from riskscanner.infra.scanning import GradleScriptParser, extract_coordinates
from riskscanner.infra.scanning.gradle import parse_notation, strip_comments

GROOVY = """
buildscript {
    repositories { mavenCentral() }
    dependencies {
        classpath 'com.android.tools.build:gradle:8.1.0'
    }
}

plugins { id 'java' }

def jacksonVersion = '2.15.2'

dependencies {
    implementation 'org.springframework:spring-core:5.3.20'
    api "com.google.guava:guava:32.1.2-jre"
    // implementation 'commented:out:1.0'
    /* testImplementation 'block:comment:1.0' */
    implementation "com.fasterxml.jackson.core:jackson-databind:${jacksonVersion}"
    compileOnly group: 'org.projectlombok', name: 'lombok', version: '1.18.28'
    runtimeOnly 'org.postgresql:postgresql'
    testImplementation 'junit:junit:4.13.2'
    implementation platform('org.springframework.boot:spring-boot-dependencies:3.1.0')
    implementation 'io.netty:netty-all:4.1.94.Final:linux-x86_64@jar'
}
"""

KOTLIN = """
dependencies {
    implementation("org.jetbrains.kotlin:kotlin-stdlib:1.9.0")
    testRuntimeOnly(group = "org.junit.platform", name = "junit-platform-launcher", version = "1.10.0")
    implementation(libs.some.alias)
}
"""


class TestExtractCoordinates:
    def test_groovy(self):
        coords = extract_coordinates(GROOVY)
        ids = [c.id for c in coords]

        assert ids == [
            "org.springframework:spring-core:5.3.20",
            "com.google.guava:guava:32.1.2-jre",
            "org.projectlombok:lombok:1.18.28",
            "junit:junit:4.13.2",
            "org.springframework.boot:spring-boot-dependencies:3.1.0",
            "io.netty:netty-all:4.1.94.Final",
        ]
        assert all(c.build_tool is BuildTool.GRADLE and c.direct for c in coords)
        scopes = {c.artifact_id: c.scope for c in coords}
        assert scopes["lombok"] == "provided"
        assert scopes["junit"] == "test"
        assert scopes["spring-core"] == "compile"

    def test_kotlin_dsl(self):
        coords = extract_coordinates(KOTLIN)
        assert [(c.id, c.scope) for c in coords] == [
            ("org.jetbrains.kotlin:kotlin-stdlib:1.9.0", "compile"),
            ("org.junit.platform:junit-platform-launcher:1.10.0", "test"),
        ]

    def test_buildscript_only(self):
        assert extract_coordinates("buildscript { dependencies { classpath 'a:b:1' } }") == []

    def test_unbalanced_braces(self):
        with pytest.raises(ScanError) as exc:
            extract_coordinates("dependencies {\n implementation 'a:b:1'\n", "build.gradle")
        assert exc.value.kind is ScanErrorKind.PARSE_FAILURE

    def test_braces_inside_strings_ignored(self):
        coords = extract_coordinates("dependencies { implementation 'a:b:1' }\nprintln '}'")
        assert [c.id for c in coords] == ["a:b:1"]

    def test_url_in_string_is_not_a_comment(self):
        text = "repositories { maven { url 'https://repo.example.com/maven' } }\ndependencies { api 'x:y:2' }"
        assert "https://repo.example.com/maven" in strip_comments(text)
        assert [c.id for c in extract_coordinates(text)] == ["x:y:2"]


class TestParseNotation:
    @pytest.mark.parametrize(
        "notation,expected",
        [
            ("g:a:1.0", ("g", "a", "1.0")),
            ("g:a:1.0:sources", ("g", "a", "1.0")),
            ("g:a:1.0@aar", ("g", "a", "1.0")),
            ("g:a", None),
            ("g::1.0", None),
        ],
    )
    def test_notation(self, notation, expected):
        assert parse_notation(notation) == expected


class TestGradleScriptParser:
    def test_parse_file(self, tmp_path):
        build = tmp_path / "build.gradle.kts"
        build.write_text(KOTLIN, encoding="utf-8")

        result = GradleScriptParser().parse(build)

        assert result.build_tool is BuildTool.GRADLE
        assert result.confidence.level is ConfidenceLevel.MEDIUM
        assert result.confidence.best_effort is True
        assert len(result.coordinates) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(ScanError) as exc:
            GradleScriptParser().parse(tmp_path / "build.gradle")
        assert exc.value.kind is ScanErrorKind.NOT_FOUND
