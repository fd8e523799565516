from pytest_archon import archrule


def test_compiler_is_backend_agnostic() -> None:
    """
    The predicate tree, request descriptors and compiler are pure data
    transformations. They must not know about the Supabase client.
    """
    (
        archrule("compiler_is_backend_agnostic")
        .match("formations_catalog.compiler")
        .match("formations_catalog.predicates")
        .match("formations_catalog.filters")
        .match("formations_catalog.operators")
        .should_not_import("supabase*")
        .should_not_import("postgrest*")
        .should_not_import("formations_catalog.client")
        .should_not_import("formations_catalog.repository")
        .should_not_import("formations_catalog.tokens")
        .check("formations_catalog")
    )


def test_rendering_does_not_execute() -> None:
    """
    PostgREST rendering only produces parameters; executing them is the
    repository's job.
    """
    (
        archrule("rendering_does_not_execute")
        .match("formations_catalog.postgrest")
        .should_not_import("supabase*")
        .should_not_import("formations_catalog.client")
        .should_not_import("formations_catalog.repository")
        .check("formations_catalog")
    )


def test_settings_independence() -> None:
    """Settings must be importable without the backend client."""
    (
        archrule("settings_independence")
        .match("formations_catalog.settings")
        .should_not_import("supabase*")
        .should_not_import("postgrest*")
        .should_not_import("formations_catalog.client")
        .check("formations_catalog")
    )
