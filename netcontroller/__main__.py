"""
Network Controller - python -m netcontroller
"""

from .main import main

if __name__ == "__main__":
    main()
