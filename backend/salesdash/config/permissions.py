"""
Page permission registry: roles, page paths and the per-role defaults.

The table here is the fallback; admins override it at runtime through the
settings document (``configuracoes/main``).
"""

ROLES = {
    "admin":      {"label": "Admin"},
    "socio":      {"label": "Sócio"},
    "financeiro": {"label": "Financeiro"},
    "vendedor":   {"label": "Vendedor"},
    "logistica":  {"label": "Logística"},
    "expedicao":  {"label": "Expedição"},
}

FULL_ACCESS_ROLES = ["admin"]

# Assigned to profiles without a role or with a role outside ROLES
DEFAULT_ROLE = "vendedor"

PROTECTED_ROOT = "/dashboard"
LOGIN_PATH = "/login"
PASSWORD_CHANGE_PATH = "/trocar-senha"

DEFAULT_PAGE_PERMISSIONS = {
    "/dashboard":               ["admin", "socio", "financeiro", "vendedor", "logistica", "expedicao"],
    "/dashboard/vendas":        ["admin", "socio", "vendedor"],
    "/dashboard/logistica":     ["admin", "socio", "logistica", "expedicao"],
    "/dashboard/relatorios":    ["admin", "socio", "financeiro"],
    "/dashboard/taxas":         ["admin", "socio", "financeiro"],
    "/dashboard/conexoes":      ["admin"],
    "/dashboard/permissoes":    ["admin"],
    "/dashboard/configuracoes": ["admin"],
}

ALL_PAGES = list(DEFAULT_PAGE_PERMISSIONS.keys())


def normalize_role(value) -> str:
    """Map a stored role value onto the closed role set."""
    if isinstance(value, str) and value.strip() in ROLES:
        return value.strip()
    return DEFAULT_ROLE


def resolve_role(stored, claimed=None) -> str:
    """Stored profile role when valid, else the token claim, else the default."""
    if isinstance(stored, str) and stored.strip() in ROLES:
        return stored.strip()
    return normalize_role(claimed)


def is_protected(path: str) -> bool:
    return path == PROTECTED_ROOT or path.startswith(PROTECTED_ROOT + "/")
