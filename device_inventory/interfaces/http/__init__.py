"""HTTP interface: FastAPI dependencies, routers and error mapping."""
