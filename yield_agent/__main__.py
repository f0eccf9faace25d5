"""Allow ``python -m yield_agent``."""
from .cli import main

if __name__ == "__main__":
    main()
