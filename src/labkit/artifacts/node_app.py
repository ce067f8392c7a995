"""Minimal Express application used by the Node multi-stage build lab."""
import json
from textwrap import dedent


def render_server_js(port: int = 3000, greeting: str = "Hello from Node.js!") -> str:
    return dedent(
        f"""\
        const express = require('express');

        const app = express();
        const PORT = process.env.PORT || {port};

        app.get('/', (req, res) => {{
          res.send({json.dumps(greeting)});
        }});

        app.listen(PORT, () => {{
          console.log(`Server listening on port ${{PORT}}`);
        }});
        """
    )


def render_package_json(name: str = "node-docker-app", version: str = "1.0.0") -> str:
    package = {
        "name": name,
        "version": version,
        "main": "server.js",
        "scripts": {"start": "node server.js"},
        "dependencies": {"express": "^4.19.2"},
    }
    return json.dumps(package, indent=2) + "\n"
