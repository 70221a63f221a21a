# ballot_engine/main.py
from ballot_engine.adapters.api.main import create_app

# Entry point for Uvicorn (`uvicorn ballot_engine.main:app`)
app = create_app()
