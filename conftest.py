import os
import sys

# Qt widgets in the consumer tests need a platform plugin without a display.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# pynput's X backend fails to import without a display; its dummy backend
# keeps the provider surface importable for tests that inject controllers.
if sys.platform.startswith("linux") and not os.environ.get("DISPLAY"):
    os.environ.setdefault("PYNPUT_BACKEND", "dummy")
