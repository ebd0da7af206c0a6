from flask import request
from flask_restx import Namespace, fields, Resource
from . import doctor_store
from .search import parse_search_args, run_search
from .errors import ValidationError, NotFound
from .models import MAX_DB_INT

doctors_ns = Namespace("doctors", description="Doctor listing, search and popularity")

doctor_model = doctors_ns.model("Doctor", {
    "id": fields.Integer(description="Server-generated id"),
    "name": fields.String,
    "specialization": fields.String,
    "experience_years": fields.Integer,
    "location": fields.String,
    "rating": fields.String(description="Rating between 0 and 5, e.g. \"4.8\""),
    "consultation_fee": fields.Integer,
    "phone": fields.String,
    "email": fields.String,
    "bio": fields.String,
    "gender": fields.String,
    "age": fields.Integer,
    "institute": fields.String,
    "degree": fields.String,
    "image_url": fields.String,
    "search_count": fields.Integer(description="Detail views so far"),
    "created_at": fields.String,
    "updated_at": fields.String,
})

search_params = {
    "name": "Case-insensitive partial match on the doctor's name",
    "specialization": "Exact specialization",
    "location": "Exact city",
    "minRating": "Minimum rating (0-5)",
    "maxFee": "Maximum consultation fee",
    "minExperience": "Minimum years of experience",
    "sortBy": "id, name, rating, experience_years, consultation_fee, search_count or created_at",
    "order": "asc or desc",
    "page": "Page number (default 1)",
    "limit": "Results per page, 1-100 (default 10)",
}


def _listing(items):
    return {"success": True, "count": len(items), "data": items}


@doctors_ns.route("", "/")
class DoctorList(Resource):
    @doctors_ns.response(200, "Success", [doctor_model])
    def get(self):
        """All doctors, newest first."""
        return _listing([d.to_dict() for d in doctor_store.list_doctors()]), 200


@doctors_ns.route("/top")
class TopDoctors(Resource):
    @doctors_ns.doc(params={"limit": "How many doctors (default 4, max 10)"})
    def get(self):
        """Most viewed doctors, for the "Most Searched" section."""
        doctors = doctor_store.top_by_popularity(request.args.get("limit"))
        return _listing([d.to_dict() for d in doctors]), 200


@doctors_ns.route("/cities")
class Cities(Resource):
    def get(self):
        """Distinct cities, alphabetical."""
        return _listing(doctor_store.distinct_locations()), 200


@doctors_ns.route("/specializations")
class Specializations(Resource):
    def get(self):
        """Distinct specializations, alphabetical."""
        return _listing(doctor_store.distinct_specializations()), 200


@doctors_ns.route("/search")
class DoctorSearch(Resource):
    @doctors_ns.doc(params=search_params)
    def get(self):
        """
        Filtered, sorted and paginated search:
        /api/doctors/search?name=raj&specialization=Cardiologist&sortBy=rating&order=desc&page=1&limit=10
        """
        query = parse_search_args(request.args)
        return run_search(query), 200


@doctors_ns.route("/<string:doctor_id>")
class DoctorDetail(Resource):
    @doctors_ns.response(400, "Invalid doctor ID")
    @doctors_ns.response(404, "Doctor not found")
    def get(self, doctor_id):
        """
        One doctor by id. Every call counts as a view and bumps search_count.
        """
        try:
            pk = int(doctor_id)
        except ValueError:
            raise ValidationError("Invalid doctor ID")
        if not -MAX_DB_INT <= pk <= MAX_DB_INT:
            raise NotFound("Doctor not found")
        doctor = doctor_store.fetch_by_id(pk)
        return {"success": True, "data": doctor.to_dict()}, 200
