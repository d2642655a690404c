# main.py

from __future__ import annotations

import sys
from PyQt6 import QtWidgets

from apphost.ui import HostWindow
from apphost.controller import HostController


def main():
    app = QtWidgets.QApplication(sys.argv)

    # pywin32 only exists on Windows
    from apphost.windows_integration import WindowsIntegration

    window = HostWindow()
    controller = HostController(window, WindowsIntegration())

    # no child process may outlive the host
    app.aboutToQuit.connect(controller.shutdown)

    window.show()

    # Make sure controller isn't garbage-collected
    window.controller = controller  # type: ignore

    app.exec()
    sys.exit(0)


if __name__ == "__main__":
    main()
