import os
import socket
import uvicorn

from app.core.config import settings


def get_lan_ip():
    try:
        # Connect to a public DNS server to determine the route
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "127.0.0.1"


def main():
    port = settings.PORT
    reload = os.getenv("RELOAD", "true").lower() == "true"

    print("\n" + "=" * 60)
    print(f"{settings.APP_NAME} STARTING")
    print(f"LAN URL:   http://{get_lan_ip()}:{port}")
    print(f"Local:     http://127.0.0.1:{port}")
    print(f"Login:     http://127.0.0.1:{port}/login")
    print(f"API docs:  http://127.0.0.1:{port}/api-docs")
    print("=" * 60 + "\n")

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=port,
        log_level=settings.LOG_LEVEL.lower(),
        reload=reload,
    )


if __name__ == "__main__":
    main()
