import datetime
from . import db

# Largest value an INTEGER column accepts on every supported backend
MAX_DB_INT = 2 ** 31 - 1


def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class Doctor(db.Model):
    __tablename__ = "doctors"
    __table_args__ = (
        db.CheckConstraint("rating >= 0 AND rating <= 5", name="ck_doctors_rating_range"),
        db.CheckConstraint("experience_years >= 0", name="ck_doctors_experience_non_negative"),
        db.CheckConstraint("consultation_fee >= 0", name="ck_doctors_fee_non_negative"),
        db.CheckConstraint("search_count >= 0", name="ck_doctors_search_count_non_negative"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(100), nullable=False)
    specialization = db.Column(db.String(100), nullable=False, index=True)
    experience_years = db.Column(db.Integer, nullable=False, default=0)
    location = db.Column(db.String(100), nullable=False, index=True)
    rating = db.Column(db.Numeric(2, 1, asdecimal=False), nullable=False, default=0.0)
    consultation_fee = db.Column(db.Integer, nullable=False, default=0)
    phone = db.Column(db.String(20), nullable=False)
    email = db.Column(db.String(100), unique=True, nullable=False)
    bio = db.Column(db.Text)
    gender = db.Column(db.String(10))
    age = db.Column(db.Integer)
    institute = db.Column(db.String(200))
    degree = db.Column(db.String(100))
    image_url = db.Column(db.String(255))
    search_count = db.Column(db.Integer, nullable=False, default=0, server_default="0", index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "specialization": self.specialization,
            "experience_years": self.experience_years,
            "location": self.location,
            "rating": f"{self.rating or 0:.1f}",
            "consultation_fee": self.consultation_fee,
            "phone": self.phone,
            "email": self.email,
            "bio": self.bio,
            "gender": self.gender,
            "age": self.age,
            "institute": self.institute,
            "degree": self.degree,
            "image_url": self.image_url,
            "search_count": self.search_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Doctor(id={self.id}, name='{self.name}', specialization='{self.specialization}')>"
