from doctor_directory import create_app, db

app = create_app()

if __name__ == "__main__":
    # Creates missing tables for local runs; schema changes go through `flask db`.
    with app.app_context():
        db.create_all()
        print("Tables ready.")

    app.run(debug=app.config.get("DEBUG", False))
