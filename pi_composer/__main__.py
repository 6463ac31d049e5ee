"""Entry point wrapper for ``python -m pi_composer``.

When the package is executed as a module the code here simply forwards
execution to :func:`pi_composer.main`. Keeping the logic in a single function
means the behaviour is identical whether the user runs ``python -m
pi_composer`` or the installed ``pi-composer`` console script.

Example
-------
The following invocation prints a 16-note melody with harmony voices::

    python -m pi_composer --digits 16 --scale pentatonic --key G --harmony
"""

from . import main

if __name__ == "__main__":
    main()
