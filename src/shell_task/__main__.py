"""shell-task entry point.

Supports: python -m shell_task
"""

from .app import main

if __name__ == "__main__":
    main()
