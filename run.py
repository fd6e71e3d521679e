import uvicorn
import os
import sys

from app.config.settings import settings

if __name__ == "__main__":
    # Ensure usage of the current directory for imports
    sys.path.append(os.path.dirname(os.path.abspath(__file__)))

    print(f"🚀 Starting {settings.APP_NAME} backend...")
    uvicorn.run("app.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=settings.DEBUG)
