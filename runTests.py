import pytest
import sys
from pathlib import Path

def run_all_tests():
    """
    Discovers and executes all test scripts inside the tests/ directory.
    """
    # Project root must be importable so 'FreeFly' and 'config' resolve
    root_dir = Path(__file__).resolve().parent
    sys.path.append(str(root_dir))

    print("=" * 60)
    print("Starting Free Fly Test Suite")
    print(f"Root Directory: {root_dir}")
    print("=" * 60)

    args = [
        "-v",
        str(root_dir / "tests"),
        "--disable-warnings",
        "-p", "no:cacheprovider"
    ]

    exit_code = pytest.main(args)
    sys.exit(exit_code)

if __name__ == "__main__":
    run_all_tests()
