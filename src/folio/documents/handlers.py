"""Template handler registry.

Maps source extensions to the way their bodies are processed: markdown
bodies are converted to HTML during parsing, template bodies are rendered
with the template engine during the layout pass.
"""

from dataclasses import dataclass

from folio.config import TemplatesConfig


@dataclass(frozen=True)
class TemplateHandlerSpec:
    """How documents with a given set of extensions are handled."""

    name: str
    exts: tuple[str, ...]
    default_layout: str | None
    converts_markup: bool


class HandlerRegistry:
    """Lookup of template handler specs by extension."""

    def __init__(self, specs: list[TemplateHandlerSpec] | None = None):
        self._by_ext: dict[str, TemplateHandlerSpec] = {}
        for spec in specs or []:
            self.add(spec)

    @classmethod
    def from_config(cls, templates: TemplatesConfig) -> "HandlerRegistry":
        return cls(
            [
                TemplateHandlerSpec(
                    name="markdown",
                    exts=tuple(ext.lower() for ext in templates.markdown_exts),
                    default_layout=templates.markdown_default_layout or None,
                    converts_markup=True,
                ),
                TemplateHandlerSpec(
                    name="template",
                    exts=tuple(ext.lower() for ext in templates.template_exts),
                    default_layout=templates.template_default_layout or None,
                    converts_markup=False,
                ),
            ]
        )

    def add(self, spec: TemplateHandlerSpec) -> None:
        for ext in spec.exts:
            self._by_ext[ext.lstrip(".").lower()] = spec

    def has_handler(self, ext: str) -> bool:
        return ext.lstrip(".").lower() in self._by_ext

    def get(self, ext: str) -> TemplateHandlerSpec | None:
        return self._by_ext.get(ext.lstrip(".").lower())
