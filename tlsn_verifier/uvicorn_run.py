"""
Entrypoint to run the TLSN verifier.

By default this runs plain HTTP inside the CVM; TLS is expected to be terminated by the
deployment gateway. For direct TLS set SERVER_CERT and SERVER_KEY.

Environment:
- TLSN_VERIFIER_HOST, TLSN_VERIFIER_PORT (bind address)
- SERVER_CERT, SERVER_KEY (optional)
"""

import os
import uvicorn

from tlsn_verifier.app.config import HOST, PORT, LOG_LEVEL

if __name__ == "__main__":
    certfile = os.environ.get("SERVER_CERT")
    keyfile = os.environ.get("SERVER_KEY")

    if certfile and keyfile:
        uvicorn.run("tlsn_verifier.app.main:app", host=HOST, port=PORT, ssl_certfile=certfile, ssl_keyfile=keyfile, log_level=LOG_LEVEL.lower())
    else:
        # Plain HTTP (use only behind a trusted TLS terminator)
        uvicorn.run("tlsn_verifier.app.main:app", host=HOST, port=PORT, log_level=LOG_LEVEL.lower())
