"""Import every model module so ``Base.metadata`` sees all tables.

Used by the app factory, Alembic and the test suite.
"""

import agroerp.auth.models  # noqa: F401
import agroerp.firms.models  # noqa: F401
import agroerp.audit.models  # noqa: F401
import agroerp.gestiones.models  # noqa: F401
import agroerp.works.models  # noqa: F401
import agroerp.livestock.models  # noqa: F401
import agroerp.inputs.models  # noqa: F401
import agroerp.valuation.models  # noqa: F401
