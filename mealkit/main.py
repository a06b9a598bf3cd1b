import logging

import uvicorn
from mealkit.api.api_run import app
from mealkit.utilities.config import APP_HOST, APP_PORT, DEBUG
from mealkit.utilities.network import get_local_ip


def main():
    logging.basicConfig(
        level=logging.DEBUG if DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    local_url = f"http://localhost:{APP_PORT}"
    local_ip = get_local_ip()
    # Friendly pointers to where the API can be reached
    print(f"Mealkit API running on {local_url} (Press CTRL+C to quit)")
    if local_ip not in ("127.0.0.1", "localhost"):
        print(f"Accessible from other devices at: http://{local_ip}:{APP_PORT}")
    uvicorn.run(app, host=APP_HOST, port=APP_PORT)


if __name__ == "__main__":
    main()
