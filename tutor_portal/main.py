# tutor_portal/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from tutor_portal.routes import auth, courses, blog, bios, testimonials, library_items, inquiries, payments, health
from tutor_portal.core.config import settings
from tutor_portal.core.errors import register_exception_handlers
from dotenv import load_dotenv

load_dotenv()
app = FastAPI(
    title="Tutor Portal API",
    description="Session and proxy layer between the tutoring site and its content backend",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(courses.router, prefix="/api/courses", tags=["Courses"])
app.include_router(blog.router, prefix="/api/blog", tags=["Blog"])
app.include_router(bios.router, prefix="/api/bios", tags=["Bios"])
app.include_router(testimonials.router, prefix="/api/testimonials", tags=["Testimonials"])
app.include_router(library_items.router, prefix="/api/library-items", tags=["Library Items"])
app.include_router(inquiries.router, prefix="/api/inquiries", tags=["Inquiries"])
app.include_router(payments.router, prefix="/api/payments", tags=["Payments"])
app.include_router(health.router, prefix="/api/health", tags=["Health"])

@app.get("/")
async def root():
    return {"message": "Tutor Portal API"}
