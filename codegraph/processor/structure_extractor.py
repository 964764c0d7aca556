import re
from typing import List, Dict, Any, Iterable

from ..types import AnalysisRecord, CodeFile
from ..utils.logger import app_logger

JS_KEYWORDS = {
    'if', 'for', 'while', 'switch', 'catch', 'return', 'function', 'typeof',
    'constructor', 'super', 'new', 'await', 'import', 'require',
}

JS_FUNCTION_RE = re.compile(
    r"(?:^|[^\w.])function\s*\*?\s*(\w+)\s*\("
    r"|(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s+)?(?:function\b|\([^)]*\)\s*=>|\w+\s*=>)",
    re.MULTILINE,
)
JS_CLASS_RE = re.compile(r"\bclass\s+(\w+)(?:\s+extends\s+([\w.]+))?\s*\{")
JS_METHOD_RE = re.compile(r"^\s*(?:static\s+)?(?:async\s+)?\*?\s*(\w+)\s*\(([^)]*)\)\s*\{", re.MULTILINE)
JS_IMPORT_RE = re.compile(
    r"""import\s+(?:[\w*{}\s,]+?\s+from\s+)?['"]([^'"]+)['"]"""
    r"""|require\s*\(\s*['"]([^'"]+)['"]\s*\)"""
)

PY_FUNCTION_RE = re.compile(r"^([ \t]*)(?:async\s+)?def\s+(\w+)\s*\(([^)]*)\)", re.MULTILINE)
PY_CLASS_RE = re.compile(r"^([ \t]*)class\s+(\w+)\s*(?:\(([^)]*)\))?\s*:", re.MULTILINE)
PY_IMPORT_RE = re.compile(r"^\s*(?:from\s+(\.*[\w.]*)\s+import\b|import\s+([\w.]+(?:\s*,\s*[\w.]+)*))", re.MULTILINE)


def _params(raw: str) -> List[str]:
    params = []
    for part in raw.split(","):
        name = re.split(r"[=:]", part.strip(), maxsplit=1)[0].strip().lstrip("*")
        if name and name not in ("self", "cls"):
            params.append(name)
    return params


def _block_end(content: str, open_brace: int) -> int:
    """Index just past the brace matching the one at ``open_brace``."""
    depth = 0
    for i in range(open_brace, len(content)):
        if content[i] == "{":
            depth += 1
        elif content[i] == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return len(content)


class StructureExtractor:
    """Best-effort regex extraction of functions, classes and imports."""

    def __init__(self):
        self.logger = app_logger.bind(component="structure_extractor")

    def extract_all(self, code_files: Iterable[CodeFile]) -> List[AnalysisRecord]:
        records = []
        for code_file in code_files:
            if code_file.content is None:
                continue
            record = self.extract(code_file)
            self.logger.debug(
                f"Analyzed {code_file.path}: {len(record.functions)} functions, {len(record.classes)} classes"
            )
            records.append(record)
        return records

    def extract(self, code_file: CodeFile) -> AnalysisRecord:
        """Extract the structural facts of one loaded file."""
        content = code_file.content or ""
        language = code_file.language or "text"

        if language == "python":
            functions, classes, imports = self._extract_python(content)
        elif language in ("javascript", "typescript"):
            functions, classes, imports = self._extract_javascript(content)
        else:
            functions, classes, imports = [], [], []

        return AnalysisRecord(
            path=code_file.path,
            language=language,
            functions=functions,
            classes=classes,
            imports=imports,
            size=code_file.size,
        )

    def _extract_javascript(self, content: str):
        classes: List[Dict[str, Any]] = []
        class_spans = []
        for match in JS_CLASS_RE.finditer(content):
            end = _block_end(content, match.end() - 1)
            body = content[match.end():end - 1]
            methods = [
                {"name": m.group(1), "params": _params(m.group(2))}
                for m in JS_METHOD_RE.finditer(body)
                if m.group(1) not in JS_KEYWORDS
            ]
            classes.append({
                "name": match.group(1),
                "methods": methods,
                "inheritance": [match.group(2)] if match.group(2) else [],
            })
            class_spans.append((match.start(), end))

        functions = []
        seen = set()
        for match in JS_FUNCTION_RE.finditer(content):
            name = match.group(1) or match.group(2)
            if not name or name in JS_KEYWORDS or name in seen:
                continue
            if any(start <= match.start() < end for start, end in class_spans):
                continue
            seen.add(name)
            functions.append({"name": name})

        imports = []
        for match in JS_IMPORT_RE.finditer(content):
            target = match.group(1) or match.group(2)
            if target not in imports:
                imports.append(target)

        return functions, classes, imports

    def _extract_python(self, content: str):
        classes: List[Dict[str, Any]] = []
        class_bodies = []
        for match in PY_CLASS_RE.finditer(content):
            bases = [b.strip() for b in (match.group(3) or "").split(",") if b.strip() and "=" not in b]
            classes.append({"name": match.group(2), "methods": [], "inheritance": bases})
            class_bodies.append({"start": match.end(), "indent": len(match.group(1)),
                                 "cls": classes[-1], "method_indent": None})

        functions = []
        for match in PY_FUNCTION_RE.finditer(content):
            indent = len(match.group(1))
            entry = {"name": match.group(2), "params": _params(match.group(3))}
            body = self._enclosing_class(content, match.start(), indent, class_bodies)
            if body is not None:
                if body["method_indent"] is None:
                    body["method_indent"] = indent
                if indent == body["method_indent"]:
                    body["cls"]["methods"].append(entry)
            elif indent == 0:
                functions.append(entry)

        imports = []
        for match in PY_IMPORT_RE.finditer(content):
            targets = [match.group(1)] if match.group(1) else match.group(2).split(",")
            for target in (t.strip() for t in targets):
                if target and target not in imports:
                    imports.append(target)

        return functions, classes, imports

    @staticmethod
    def _enclosing_class(content: str, position: int, indent: int, class_bodies):
        """Innermost class whose body is still open at ``position``."""
        owner = None
        for body in class_bodies:
            if body["start"] > position:
                break
            if indent <= body["indent"]:
                continue
            # A non-blank line at or left of the class's indent closes its body
            lines = content[body["start"]:position].splitlines()[1:]
            closed = any(
                line.strip() and len(line) - len(line.lstrip()) <= body["indent"]
                for line in lines
            )
            if not closed:
                owner = body
        return owner
