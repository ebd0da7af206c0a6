import click
from . import db
from .models import Doctor

# name, specialization, location, experience, rating, fee, phone, email, gender, age
SAMPLE_DOCTORS = [
    ("Dr. Rajesh Kumar", "Cardiologist", "Mumbai", 15, 4.8, 1500, "9876543210", "rajesh.kumar@example.com", "Male", 45),
    ("Dr. Priya Sharma", "Dermatologist", "Delhi", 8, 4.6, 800, "9876543211", "priya.sharma@example.com", "Female", 36),
    ("Dr. Anil Mehta", "Orthopedic", "Pune", 20, 4.7, 1200, "9876543212", "anil.mehta@example.com", "Male", 52),
    ("Dr. Sneha Patil", "Pediatrician", "Pune", 10, 4.9, 700, "9876543213", "sneha.patil@example.com", "Female", 38),
    ("Dr. Vikram Rao", "Neurologist", "Bangalore", 18, 4.5, 1800, "9876543214", "vikram.rao@example.com", "Male", 49),
    ("Dr. Kavita Iyer", "Gynecologist", "Chennai", 12, 4.4, 900, "9876543215", "kavita.iyer@example.com", "Female", 41),
    ("Dr. Arjun Singh", "Cardiologist", "Delhi", 6, 4.2, 1000, "9876543216", "arjun.singh@example.com", "Male", 33),
    ("Dr. Meera Nair", "Psychiatrist", "Mumbai", 14, 4.6, 1300, "9876543217", "meera.nair@example.com", "Female", 44),
]


def register_commands(app):
    @app.cli.command("init-db")
    @click.option("--drop", is_flag=True, help="Drop existing tables first.")
    def init_db(drop):
        """Create the doctors table (development only; use `flask db` for migrations)."""
        if drop:
            db.drop_all()
        db.create_all()
        click.echo("Tables created.")

    @app.cli.command("seed-db")
    def seed_db():
        """Insert sample doctors, skipping emails that already exist."""
        added = 0
        for name, spec, city, exp, rating, fee, phone, email, gender, age in SAMPLE_DOCTORS:
            if db.session.scalar(db.select(Doctor.id).where(Doctor.email == email)) is not None:
                click.echo(f"Doctor with email {email} already exists. Skipping.")
                continue
            db.session.add(Doctor(
                name=name, specialization=spec, location=city, experience_years=exp,
                rating=rating, consultation_fee=fee, phone=phone, email=email,
                gender=gender, age=age,
            ))
            added += 1
        db.session.commit()
        click.echo(f"{added} doctors added.")
