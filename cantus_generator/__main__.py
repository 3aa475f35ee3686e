"""Entry point wrapper for ``python -m cantus_generator``.

Execution is forwarded to :func:`cantus_generator.main` so the behaviour is
identical whether the user runs ``python -m cantus_generator`` or the
installed ``cantus-generator`` console script.

Example
-------
    python -m cantus_generator --tonic F4 --mode major --seed 3
"""

import sys

from . import main

if __name__ == "__main__":
    sys.exit(main())
