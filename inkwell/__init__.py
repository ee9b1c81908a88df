"""Inkwell static site generator.

Inkwell turns a Jekyll-style project (posts and pages in Markdown with YAML
frontmatter, Jinja2 layouts, a theme) into a static website.

A build is a single synchronous pass: configuration is loaded and
validated, every content unit is parsed, every page is rendered in memory,
and the finished site is swapped into the output directory in one step.
Any error stops the build and leaves the previous output untouched.

The main entry point is the CLI module, which provides commands for
scaffolding new projects, building sites, running the preview server and
writing posts.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
