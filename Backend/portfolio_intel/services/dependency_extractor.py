import os
import re
import json
import toml
import yaml
import logging
from typing import Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

SKIPPABLE_FOLDERS = (
    ".git", "node_modules", ".venv", "venv", "__pycache__",
    "dist", "build", "vendor", "site-packages", ".next", "cache", ".cache",
)


class DependencyExtractor:
    """
    Parse the well-known manifest/config files of a repository into
    dependency tokens. Only named components are emitted (package names,
    Maven/Gradle coordinates, plugin ids, base images, imported modules),
    never free text, so prose in comments cannot read as a framework.
    Manifests that fail to parse contribute nothing.
    """

    # 1. Registry of files worth fetching -> ecosystem
    DEP_FILES: Dict[str, str] = {
        # --- JavaScript / TypeScript ---
        "package.json": "javascript",

        # --- Python ---
        "requirements.txt": "python",
        "setup.py": "python",
        "pyproject.toml": "python",
        "Pipfile": "python",
        "environment.yml": "python",
        "manage.py": "python",
        "settings.py": "python",

        # --- Java ---
        "pom.xml": "java",
        "build.gradle": "java",
        "build.gradle.kts": "java",

        # --- Containers ---
        "Dockerfile": "docker",
        "docker-compose.yml": "docker",
        "docker-compose.yaml": "docker",
        "compose.yml": "docker",
        "compose.yaml": "docker",
    }

    # 2. Parsers for different file types
    @staticmethod
    def _parse_json(text: str) -> List[str]:
        try:
            data = json.loads(text)
        except ValueError:
            return []
        if not isinstance(data, dict):
            return []
        deps: List[str] = []
        for section in ("dependencies", "devDependencies", "peerDependencies"):
            block = data.get(section)
            if isinstance(block, dict):
                deps.extend(block.keys())
        return deps

    @staticmethod
    def _parse_toml(text: str) -> List[str]:
        try:
            data = toml.loads(text)
        except (toml.TomlDecodeError, TypeError, ValueError):
            return []
        deps: List[str] = []
        poetry = data.get("tool", {}).get("poetry", {})
        for key in ("dependencies", "dev-dependencies"):
            if isinstance(poetry.get(key), dict):
                deps.extend(poetry[key].keys())
        project = data.get("project", {})  # PEP 621
        if isinstance(project.get("dependencies"), list):
            deps.extend(project["dependencies"])
        for extra in (project.get("optional-dependencies") or {}).values():
            if isinstance(extra, list):
                deps.extend(extra)
        for key in ("packages", "dev-packages"):  # Pipfile
            if isinstance(data.get(key), dict):
                deps.extend(data[key].keys())
        return [_requirement_name(d) for d in deps if isinstance(d, str)]

    @staticmethod
    def _parse_yaml(text: str) -> List[str]:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError:
            return []
        deps: List[str] = []
        if isinstance(data, dict):
            for key in ("dependencies", "packages", "requirements"):
                val = data.get(key)
                if isinstance(val, list):
                    for item in val:
                        if isinstance(item, str):
                            deps.append(_requirement_name(item))
                        elif isinstance(item, dict):  # conda "- pip: [...]"
                            for sub in item.values():
                                if isinstance(sub, list):
                                    deps.extend(_requirement_name(s) for s in sub if isinstance(s, str))
                elif isinstance(val, dict):
                    deps.extend(val.keys())
        return deps

    @staticmethod
    def _parse_requirements(text: str) -> List[str]:
        deps = []
        for line in text.splitlines():
            line = line.strip()
            if not line or line.startswith(("#", "-")):
                continue
            deps.append(_requirement_name(line))
        return [d for d in deps if d]

    @staticmethod
    def _parse_setup_py(text: str) -> List[str]:
        """Quoted requirements inside install_requires / tests_require / extras_require."""
        deps: List[str] = []
        for block in _SETUP_LISTS.findall(text):
            deps.extend(_requirement_name(s) for s in _QUOTED.findall(block))
        for extras in _SETUP_EXTRAS.findall(text):
            for block in re.findall(r"\[(.*?)\]", extras, flags=re.DOTALL):
                deps.extend(_requirement_name(s) for s in _QUOTED.findall(block))
        return [d for d in deps if d]

    @staticmethod
    def _parse_python_module(text: str) -> List[str]:
        """manage.py / settings.py: imported packages and dotted module strings."""
        deps = _IMPORTS.findall(text)
        deps.extend(_DOTTED_STRING.findall(text))
        return deps

    @staticmethod
    def _parse_maven(text: str) -> List[str]:
        """groupId / artifactId values; descriptions and comments are ignored."""
        text = re.sub(r"<!--.*?-->", "", text, flags=re.DOTALL)
        return [value for _, value in _MAVEN_COORD.findall(text)]

    @staticmethod
    def _parse_gradle(text: str) -> List[str]:
        deps: List[str] = []
        for group, artifact in _GRADLE_COORD.findall(text):
            deps.extend((group, artifact))
        deps.extend(_GRADLE_PLUGIN.findall(text))
        return deps

    @staticmethod
    def _parse_dockerfile(text: str) -> List[str]:
        """Base images plus packages named in pip / npm / yarn / pnpm installs."""
        deps: List[str] = []
        for line in _docker_instructions(text):
            keyword, _, rest = line.partition(" ")
            keyword = keyword.upper()
            if keyword == "FROM":
                image = next((w for w in rest.split() if not w.startswith("--")), "")
                deps.append(_image_name(image))
            elif keyword == "RUN":
                for segment in re.split(r"&&|\|\||[;|]", rest):
                    deps.extend(_install_args(segment))
        return [d for d in deps if d]

    @staticmethod
    def _parse_compose(text: str) -> List[str]:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError:
            return []
        services = data.get("services") if isinstance(data, dict) else None
        if not isinstance(services, dict):
            return []
        images = (s.get("image") for s in services.values() if isinstance(s, dict))
        return [_image_name(i) for i in images if isinstance(i, str)]

    # 3. File-specific dispatch map
    PARSERS: Dict[str, Callable[[str], List[str]]] = {
        "package.json": _parse_json.__func__,
        "requirements.txt": _parse_requirements.__func__,
        "setup.py": _parse_setup_py.__func__,
        "pyproject.toml": _parse_toml.__func__,
        "Pipfile": _parse_toml.__func__,
        "environment.yml": _parse_yaml.__func__,
        "manage.py": _parse_python_module.__func__,
        "settings.py": _parse_python_module.__func__,
        "pom.xml": _parse_maven.__func__,
        "build.gradle": _parse_gradle.__func__,
        "build.gradle.kts": _parse_gradle.__func__,
        "Dockerfile": _parse_dockerfile.__func__,
        "docker-compose.yml": _parse_compose.__func__,
        "docker-compose.yaml": _parse_compose.__func__,
        "compose.yml": _parse_compose.__func__,
        "compose.yaml": _parse_compose.__func__,
    }

    @staticmethod
    def canonical_name(path: str) -> Optional[str]:
        """Map a repository path to its DEP_FILES entry, or None."""
        base = os.path.basename(path)
        if base in DependencyExtractor.DEP_FILES:
            return base
        lower = base.lower()
        if lower.startswith("requirements") and lower.endswith(".txt"):
            return "requirements.txt"
        if lower == "dockerfile" or lower.startswith("dockerfile.") or lower.endswith(".dockerfile"):
            return "Dockerfile"
        return None

    @staticmethod
    def is_skippable(path: str) -> bool:
        return any(part in SKIPPABLE_FOLDERS for part in path.split("/")[:-1])

    def wants(self, path: str) -> bool:
        return not self.is_skippable(path) and self.canonical_name(path) is not None

    def extract_from_file(self, filename: str, text: str) -> List[str]:
        name = self.canonical_name(filename)
        parser = self.PARSERS.get(name) if name else None
        if not parser or not text:
            return []
        return parser(text)

    def dependencies_text(self, files: Dict[str, str]) -> str:
        """All dependency tokens of a repository as one lower-cased blob."""
        tokens: List[str] = []
        for path in sorted(files):
            extracted = self.extract_from_file(path, files[path])
            if not extracted:
                logger.debug(f"No dependency tokens from {path}")
            tokens.extend(extracted)
        return " ".join(_dedupe(t.strip().lower() for t in tokens if t and t.strip()))


_QUOTED = re.compile(r"[\"']([^\"'\n]+)[\"']")
_SETUP_LISTS = re.compile(r"(?:install_requires|tests_require|setup_requires)\s*=\s*\[(.*?)\]", re.DOTALL)
_SETUP_EXTRAS = re.compile(r"extras_require\s*=\s*\{(.*?)\}", re.DOTALL)
_IMPORTS = re.compile(r"^\s*(?:from|import)\s+([A-Za-z_]\w*)", re.MULTILINE)
_DOTTED_STRING = re.compile(r"[\"']([A-Za-z_]\w*(?:\.\w+)+)[\"']")
_MAVEN_COORD = re.compile(r"<(groupId|artifactId)>\s*([^<\s]+)\s*</\1>")
_GRADLE_COORD = re.compile(r"[\"']([\w.\-]+):([\w.\-]+)(?::[^\"']*)?[\"']")
_GRADLE_PLUGIN = re.compile(r"\bid\s*\(?\s*[\"']([\w.\-]+)[\"']")
_PIP_INSTALL = re.compile(r"\bpip3?\s+install\s+(.*)")
_NODE_INSTALL = re.compile(r"\b(?:npm\s+(?:install|i|add)|yarn\s+(?:global\s+)?add|pnpm\s+(?:add|install|i))\s+(.*)")
# options whose next word is a value, not a package
_ARG_OPTIONS = {"-r", "-c", "-e", "-i", "-f", "--requirement", "--constraint", "--index-url",
                "--extra-index-url", "--find-links", "--target", "--prefix", "--registry"}


def _requirement_name(spec: str) -> str:
    return re.split(r"[<=>~!;\[\s]", spec.strip(), maxsplit=1)[0].strip()


def _npm_name(spec: str) -> str:
    if spec.startswith("@"):
        return "@" + spec[1:].split("@", 1)[0]
    return spec.split("@", 1)[0]


def _image_name(image: str) -> str:
    """registry/org/postgres:16@sha256:... -> postgres"""
    return re.split(r"[:@]", image.rsplit("/", 1)[-1], maxsplit=1)[0]


def _docker_instructions(text: str) -> List[str]:
    """Dockerfile instructions with line continuations joined and comments dropped."""
    instructions: List[str] = []
    current = ""
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.endswith("\\"):
            current += line[:-1] + " "
            continue
        instructions.append(current + line)
        current = ""
    if current:
        instructions.append(current)
    return instructions


def _install_args(segment: str) -> List[str]:
    for pattern, name_of in ((_PIP_INSTALL, _requirement_name), (_NODE_INSTALL, _npm_name)):
        match = pattern.search(segment)
        if not match:
            continue
        names: List[str] = []
        skip = False
        for word in match.group(1).split():
            word = word.strip("\"'")
            if skip:
                skip = False
            elif word in _ARG_OPTIONS:
                skip = True
            elif word and not word.startswith(("-", ".", "/")):
                names.append(name_of(word))
        return names
    return []


def _dedupe(seq: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(seq))
