"""Schemas registered by the engine itself on bootstrap and reset."""

from __future__ import annotations

from .schema import Schema


def build_seo_schema() -> Schema:
    """Build the settings schema for the "seo" category."""
    schema = Schema("seo")
    schema.setting(
        "app_name",
        "string",
        default="",
        group="General",
        description="App name used in page title suffix (empty = no suffix)",
    )
    schema.setting(
        "title_format",
        "string",
        default="%(page_title)s | %(app_name)s",
        group="General",
        description="Format pattern for the <title> tag, with %(page_title)s and %(app_name)s placeholders",
    )
    schema.setting(
        "og_image_url",
        "string",
        default="",
        group="Open Graph",
        description="Default Open Graph image URL for social sharing",
    )
    schema.setting(
        "auth_indexable",
        "boolean",
        default=True,
        group="Robots",
        description="Allow search engines to index auth pages (login, register, etc.)",
    )
    schema.setting(
        "head_tags",
        "string",
        default="",
        group="Script Injection",
        description="HTML injected in <head> on all pages (analytics, fonts, etc.)",
    )
    schema.setting(
        "body_tags",
        "string",
        default="",
        group="Script Injection",
        description="HTML injected before </body> on all pages",
    )
    return schema


BUILTIN_SCHEMAS = (build_seo_schema,)
