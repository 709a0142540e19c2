"""
ASGI entrypoint: expose `app` pour les process managers / déploiements.

- En production, uvicorn (ou gunicorn avec workers uvicorn) importe `boutique.asgi:app`.
- Toute la configuration FastAPI est centralisée dans boutique.app_setup; ce fichier ne fait qu’exposer l’instance.
"""

from boutique.app import app

if __name__ == "__main__":
    # Exécution directe utile en développement local
    import os
    import uvicorn
    uvicorn.run(
        "boutique.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
