"""Documentation pages.

Markdown sources are rendered to HTML fragments first, then every page goes
through Jinja2 (with `prod` in its context), and finally pages are moved to
directory-style URLs: `guide.html` is written as `guide/index.html`.
"""

from __future__ import annotations

import html as html_module
import re
from pathlib import PurePosixPath
from typing import AsyncIterator

import markdown
from jinja2 import Environment, FileSystemLoader, TemplateError
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_by_name, guess_lexer
from pygments.util import ClassNotFound

from ..orchestrator import BuildFile, GlobBinding, TransformError, dest, src, task
from ..orchestrator.runner import TaskContext
from ..orchestrator.stream import remove_paths
from ..orchestrator.utils import glob_base, output, source


KEEP_IN_PLACE = {"index.html", "404.html"}

_CODE_BLOCK = re.compile(
    r'<pre><code(?: class="([^"]*)")?>(.*?)</code></pre>', flags=re.DOTALL
)
_FORMATTER = HtmlFormatter(nowrap=True)


def _highlight_code(code: str, lang: str | None) -> str:
    try:
        lexer = get_lexer_by_name(lang) if lang else guess_lexer(code)
    except ClassNotFound:
        lexer = TextLexer()
    return highlight(code, lexer, _FORMATTER)


def highlight_code_blocks(fragment: str) -> str:
    """Highlight every `<pre><code>` block and add the `hljs` class to it."""

    def _replace(m: re.Match) -> str:
        classes = m.group(1) or ""
        lang = None
        for cls in classes.split():
            if cls.startswith("language-"):
                lang = cls[len("language-"):]
        code = html_module.unescape(m.group(2))
        body = _highlight_code(code, lang)
        cls = f"hljs {classes}".strip()
        return f'<pre><code class="{cls}">{body}</code></pre>'

    return _CODE_BLOCK.sub(_replace, fragment)


def render_markdown(text: str) -> str:
    fragment = markdown.markdown(text, extensions=["fenced_code", "tables"])
    return highlight_code_blocks(fragment)


def route_path(path: PurePosixPath | str) -> PurePosixPath:
    """`a.html` -> `a/index.html`; `index.html` and `404.html` stay put."""
    p = PurePosixPath(path)
    if p.suffix != ".html" or p.name in KEEP_IN_PLACE:
        return p
    return p.parent / p.stem / "index.html"


def is_partial(path: PurePosixPath) -> bool:
    """Files or folders starting with `_` are layouts/includes, not pages."""
    return any(part.startswith("_") for part in path.parts)


def make_environment(template_dir) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=False,
        keep_trailing_newline=True,
    )


def render_page(f: BuildFile, env: Environment, prod: bool) -> BuildFile:
    if f.path.suffix not in (".md", ".html"):
        return f
    try:
        if f.path.suffix == ".md":
            f = f.with_text(render_markdown(f.text())).with_path(f.path.with_suffix(".html"))
            template = env.from_string(f.text())
        else:
            template = env.get_template(f.path.as_posix())
        return f.with_text(template.render(prod=prod))
    except TemplateError as e:
        raise TransformError(f"Template error in {f.path}: {e}") from e


async def _pages(ctx: TaskContext) -> AsyncIterator[BuildFile]:
    pattern = source(ctx.params, "doc_html")
    env = make_environment(ctx.root / glob_base(pattern))
    async for f in src(pattern, ctx.root, exclude=is_partial):
        page = render_page(f, env, ctx.flags.prod)
        yield page.with_path(route_path(page.path))


@task(name="docs:html:clear")
def clear_html(ctx: TaskContext):
    """Delete generated pages, leaving scripts, styles and fonts alone."""
    remove_paths(f"{output(ctx.params, 'doc_html')}/**/*.html", ctx.root)


@task(name="docs:html:compile")
async def compile_html(ctx: TaskContext) -> AsyncIterator[BuildFile]:
    """Render markdown and templates into the site directory."""
    async for f in dest(_pages(ctx), ctx.root / output(ctx.params, "doc_html")):
        ctx.logger.debug("Wrote %s", f.path)
        yield f


@task(name="docs:html:watch")
async def watch_html(ctx: TaskContext) -> None:
    await ctx.watch(
        [
            GlobBinding(
                source(ctx.params, "doc_html"),
                "docs:html:build",
                after=ctx.notifier.reload,
            )
        ]
    )
