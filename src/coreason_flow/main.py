from coreason_flow.server import create_app

app = create_app()
