"""
Script de serveur de développement avec LLM factice.

Ce script lance le serveur avec `FakeChatClient` pour le développement local sans clé OpenAI ni
accès réseau.
"""

import os

# Ensure local-friendly defaults BEFORE importing app/modules
os.environ.setdefault("LLM_PROVIDER", "fake")
os.environ.setdefault("LLM_BACKOFF_MS", "0")

import uvicorn

from backend.app.main import app


def main():
    """
    Point d'entrée principal pour le serveur avec LLM factice.

    Lance l'application FastAPI avec un client de complétion simulé.
    """
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port, reload=False)


if __name__ == "__main__":
    main()
