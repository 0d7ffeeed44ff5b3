"""
Model package.

IMPORTANT (Alembic / SQLModel):
- Alembic autogenerate relies on `SQLModel.metadata`, which is populated only
  when the table models are imported.
- `alembic/env.py` imports `admissions.models`, so this module must import all
  SQLModel `table=True` models to register them.
"""

# Import table models so SQLModel registers them in metadata.
from admissions.audit.models import AuditLog  # noqa: F401
from admissions.institution.models import Institution  # noqa: F401
from admissions.membership.models import Membership  # noqa: F401
from admissions.user.models import User  # noqa: F401
