import uvicorn

from edupulse import create_app

app = create_app()


# List all registered routes
@app.get("/list-endpoints")
def list_endpoints():
    endpoints = []
    for route in app.router.routes:
        endpoints.append({
            "path": route.path,
            "name": route.name,
            "methods": sorted(getattr(route, "methods", None) or [])
        })
    return {"endpoints": endpoints}


if __name__ == "__main__":
    uvicorn.run("edupulse.run:app", host="0.0.0.0", port=8000, reload=True)
