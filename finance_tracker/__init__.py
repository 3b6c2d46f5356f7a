"""Top-level package for the Finance Tracker.

The primary modules are:

* ``store`` / ``db`` / ``supabase_store`` – per-user persistence backends
* ``actions`` – the operations the views call, returning ``ActionResult``
* ``aggregation`` – totals, daily series and budget progress
* ``export`` – CSV and PDF reports

To run the app from the command line you can execute:

```bash
python run_app.py
```
"""

from . import aggregation  # noqa: F401  # re-exported for convenience
from . import export  # noqa: F401  # re-exported for convenience

__all__ = ["aggregation", "export"]
