"""Package entry point for ``python -m lecture_archive``.

Delegates to the CLI's main(); see lecture_archive.cli for subcommands.
"""

from lecture_archive.cli import main

if __name__ == "__main__":
    main()
