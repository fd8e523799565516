from .client import SupabaseConnectionManager
from .compiler import (
    DEFAULT_CATEGORY_RULE,
    DEFAULT_FIELDS,
    CategoryRule,
    CategorySelection,
    FormationFields,
    NoFilter,
    OnlyOther,
    OtherPlusTags,
    TagsOnly,
    build_query_plan,
    classify_categories,
    compile_category,
    compile_filters,
)
from .exceptions import (
    AuthenticationError,
    CatalogError,
    ConfigurationError,
    ExecutionError,
    FormationNotFoundError,
    NotFoundError,
    PersistenceError,
    QueryCompilationError,
    QueryExecutionError,
    SupabaseConnectionError,
    TokenRejectedError,
    UnauthenticatedError,
    ValidationError,
)
from .filters import DEFAULT_PAGE_SIZE, FilterRequest, PageSpec, QueryPlan, SortSpec
from .operators import PredicateOperator
from .postgrest import FilterParam, PostgrestQueryBuilder
from .predicates import (
    And,
    BasePredicate,
    Equals,
    ILike,
    Not,
    Or,
    conjunction,
    predicate_from_dict,
)
from .repository import FormationPage, FormationRepository
from .settings import CatalogSettings
from .tokens import TokenService

__all__ = [
    # Predicate tree
    "PredicateOperator",
    "BasePredicate",
    "Equals",
    "ILike",
    "And",
    "Or",
    "Not",
    "conjunction",
    "predicate_from_dict",
    # Request descriptors
    "DEFAULT_PAGE_SIZE",
    "FilterRequest",
    "SortSpec",
    "PageSpec",
    "QueryPlan",
    # Compiler
    "FormationFields",
    "CategoryRule",
    "DEFAULT_FIELDS",
    "DEFAULT_CATEGORY_RULE",
    "CategorySelection",
    "NoFilter",
    "OnlyOther",
    "OtherPlusTags",
    "TagsOnly",
    "classify_categories",
    "compile_category",
    "compile_filters",
    "build_query_plan",
    # PostgREST
    "FilterParam",
    "PostgrestQueryBuilder",
    # Backend access
    "CatalogSettings",
    "SupabaseConnectionManager",
    "FormationPage",
    "FormationRepository",
    "TokenService",
    # Exceptions
    "CatalogError",
    "ConfigurationError",
    "ValidationError",
    "PersistenceError",
    "SupabaseConnectionError",
    "QueryCompilationError",
    "QueryExecutionError",
    "ExecutionError",
    "TokenRejectedError",
    "NotFoundError",
    "FormationNotFoundError",
    "AuthenticationError",
    "UnauthenticatedError",
]
