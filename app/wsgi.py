from app.custmgr import create_app

app = create_app()
