import json

from portfolio_intel.services.dependency_extractor import DependencyExtractor

extractor = DependencyExtractor()


def test_package_json_sections():
    text = json.dumps({
        "dependencies": {"react": "^18"},
        "devDependencies": {"vite": "^5"},
        "peerDependencies": {"react-dom": "^18"},
    })
    assert extractor.extract_from_file("package.json", text) == ["react", "vite", "react-dom"]


def test_invalid_manifests_contribute_nothing():
    assert extractor.extract_from_file("package.json", "{not json") == []
    assert extractor.extract_from_file("pyproject.toml", "[project\nname=") == []
    assert extractor.extract_from_file("environment.yml", "dependencies: [unclosed") == []
    assert extractor.extract_from_file("package.json", "[1, 2]") == []


def test_requirements_strip_versions_and_options():
    text = "# core\nflask>=2.0\n-r base.txt\nrequests[socks]==2.31\n\nuvicorn ; python_version>'3.8'\n"
    assert extractor.extract_from_file("requirements-dev.txt", text) == ["flask", "requests", "uvicorn"]


def test_pyproject_pep621_and_poetry():
    text = """
[project]
dependencies = ["fastapi>=0.110", "sqlalchemy"]

[tool.poetry.dependencies]
python = "^3.11"
django = "^5.0"
"""
    deps = extractor.extract_from_file("pyproject.toml", text)
    assert {"fastapi", "sqlalchemy", "django"} <= set(deps)


def test_pipfile_packages():
    text = '[packages]\nflask = "*"\n\n[dev-packages]\npytest = "*"\n'
    assert set(extractor.extract_from_file("Pipfile", text)) == {"flask", "pytest"}


def test_conda_environment_with_pip_section():
    text = "dependencies:\n  - python=3.11\n  - numpy\n  - pip:\n    - torch==2.2\n"
    deps = extractor.extract_from_file("environment.yml", text)
    assert "numpy" in deps
    assert "torch" in deps


def test_wants_known_files_outside_vendored_folders():
    assert extractor.wants("package.json")
    assert extractor.wants("backend/requirements.txt")
    assert extractor.wants("app/settings.py")
    assert extractor.wants("docker/Dockerfile.prod")
    assert not extractor.wants("node_modules/react/package.json")
    assert not extractor.wants("src/index.js")


def test_dependencies_text_is_lowercase_and_deduplicated():
    files = {
        "a/package.json": json.dumps({"dependencies": {"React": "18"}}),
        "b/package.json": json.dumps({"dependencies": {"react": "18"}}),
    }
    assert extractor.dependencies_text(files) == "react"


def test_setup_py_requirements_only():
    text = """
# Next, express our thanks to contributors
setup(
    name="tracker",
    description="Express delivery tracker",
    install_requires=["flask>=2", 'requests'],
    extras_require={"dev": ["pytest"]},
)
"""
    assert extractor.extract_from_file("setup.py", text) == ["flask", "requests", "pytest"]


def test_compose_images():
    text = "services:\n  db:\n    image: postgres:16\n  cache:\n    image: bitnami/redis:7\n  app:\n    build: .\n"
    assert extractor.extract_from_file("docker-compose.yml", text) == ["postgres", "redis"]
    assert extractor.extract_from_file("compose.yaml", "services: [oops") == []


def test_settings_module_imports_and_dotted_names():
    text = "import os\nfrom pathlib import Path\n# Next we express the apps\nINSTALLED_APPS = ['rest_framework', 'django.contrib.admin']\n"
    assert extractor.extract_from_file("mysite/settings.py", text) == ["os", "pathlib", "django.contrib.admin"]
