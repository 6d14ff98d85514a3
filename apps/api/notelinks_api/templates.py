from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from notelinks_api.domain.exceptions import TemplateVariablesMissing

_VARIABLE_RE = re.compile(r"\{\{([^{}]*)\}\}")


@dataclass(frozen=True)
class TemplateVariable:
    name: str
    placeholder: str = ""
    required: bool = False


def extract_variables(content: str) -> list[str]:
    seen: dict[str, None] = {}
    for match in _VARIABLE_RE.finditer(content):
        name = match.group(1).strip()
        if name:
            seen.setdefault(name, None)
    return list(seen)


def render_template(
    content: str,
    values: Mapping[str, str],
    variables: Iterable[TemplateVariable] = (),
) -> str:
    """Substitute ``{{ name }}`` placeholders in a single pass.

    Substituted values are never rescanned. Placeholders with no value are
    kept verbatim unless the variable is declared required, in which case
    ``TemplateVariablesMissing`` is raised before anything is rendered.
    """
    missing = [v.name for v in variables if v.required and not str(values.get(v.name, "")).strip()]
    if missing:
        raise TemplateVariablesMissing(missing)

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1).strip()
        if name and name in values:
            return str(values[name])
        return match.group(0)

    return _VARIABLE_RE.sub(substitute, content)
