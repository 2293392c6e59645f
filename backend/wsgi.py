# backend/wsgi.py
# Entry point for `flask --app wsgi ...` and `python wsgi.py`.
from stockpos import create_app

app = create_app()


if __name__ == "__main__":
    app.run(host=app.config["HOST"], port=app.config["PORT"], threaded=True)
