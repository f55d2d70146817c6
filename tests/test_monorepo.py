"""
Tests for the monorepo heuristic used by full scans
"""

import pytest

from kusari_cli.repo.monorepo import detect_monorepo, is_excluded_dir

CASES = [
    pytest.param({"package.json": '{"name": "test"}'}, False, [], id="single-project"),
    pytest.param({"lerna.json": "{}"}, True, ["monorepo config: lerna.json"], id="lerna"),
    pytest.param({"nx.json": "{}"}, True, ["monorepo config: nx.json"], id="nx"),
    pytest.param(
        {"pnpm-workspace.yaml": "packages:\n  - 'packages/*'\n"},
        True, ["monorepo config: pnpm-workspace.yaml"], id="pnpm-workspace",
    ),
    pytest.param(
        {"package.json": '{"workspaces": ["packages/*"]}'},
        True, ["package.json with workspaces"], id="npm-workspaces",
    ),
    pytest.param(
        {"Cargo.toml": '[workspace]\nmembers = ["crate1", "crate2"]\n'},
        True, ["Cargo.toml with [workspace]"], id="cargo-workspace",
    ),
    pytest.param(
        {
            "go.mod": "module example.com/root",
            "service1/go.mod": "module example.com/service1",
            "service2/go.mod": "module example.com/service2",
        },
        True, ["multiple go.mod files in subdirectories"], id="multiple-go-mod",
    ),
    pytest.param(
        {
            "package.json": '{"name": "root"}',
            "packages/pkg1/package.json": '{"name": "pkg1"}',
            "packages/pkg2/package.json": '{"name": "pkg2"}',
        },
        True, ["multiple package.json files in subdirectories"], id="multiple-package-json",
    ),
    pytest.param(
        {
            "package.json": '{"name": "root"}',
            "node_modules/some-package/package.json": '{"name": "dep"}',
        },
        False, [], id="node-modules-ignored",
    ),
    pytest.param(
        {
            "pom.xml": "<project></project>",
            "module1/pom.xml": "<project></project>",
            "module2/pom.xml": "<project></project>",
        },
        True, ["multiple pom.xml files in subdirectories"], id="multiple-pom",
    ),
    pytest.param(
        {
            "backend/go.mod": "module example.com/backend",
            "frontend/package.json": '{"name": "frontend"}',
        },
        True, ["multiple project types detected"], id="polyglot",
    ),
    pytest.param(
        {
            "cmd/go.mod": "module example.com/cmd",
            "docs/Gemfile": 'gem "github-pages"',
        },
        False, [], id="docs-ignored",
    ),
    pytest.param(
        {
            "package.json": '{"name": "root"}',
            "examples/demo/package.json": '{"name": "demo"}',
        },
        False, [], id="examples-ignored",
    ),
    pytest.param(
        {
            "go.mod": "module example.com/root",
            "pkg/db/integrationtest/tool/package.json": '{"name": "test-tool"}',
        },
        False, [], id="integration-tests-ignored",
    ),
    pytest.param(
        {
            "go.mod": "module example.com/root",
            "api/npm/package.json": '{"name": "@example/api-client"}',
        },
        False, [], id="generated-api-client-ignored",
    ),
]


def write_tree(root, files):
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


class TestDetectMonorepo:

    @pytest.mark.parametrize("files,expected,expected_indicators", CASES)
    def test_detection(self, tmp_path, files, expected, expected_indicators):
        write_tree(tmp_path, files)

        is_monorepo, indicators = detect_monorepo(tmp_path)

        assert is_monorepo is expected
        if expected:
            assert indicators
        for wanted in expected_indicators:
            assert any(wanted in indicator for indicator in indicators), indicators

    def test_polyglot_lists_ecosystems(self, tmp_path):
        write_tree(tmp_path, {
            "backend/go.mod": "module example.com/backend",
            "frontend/package.json": "{}",
        })
        _, indicators = detect_monorepo(tmp_path)
        assert "multiple project types detected (go, nodejs)" in indicators

    def test_unparseable_package_json_is_not_an_error(self, tmp_path):
        write_tree(tmp_path, {"package.json": "{not json"})
        assert detect_monorepo(tmp_path) == (False, [])


class TestExcludedDirs:

    @pytest.mark.parametrize("name", ["node_modules", "vendor", ".git", "integrationtest", "MyFixtures", "generated_code"])
    def test_excluded(self, name):
        assert is_excluded_dir(name)

    def test_npm_only_excluded_under_api(self):
        assert is_excluded_dir("npm", parent="api")
        assert not is_excluded_dir("npm", parent="tools")

    def test_regular_dir(self):
        assert not is_excluded_dir("services")
