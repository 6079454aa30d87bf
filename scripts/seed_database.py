#!/usr/bin/env python3
"""
Script to seed the database with a sample school for local development
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import date
from edurate.database import init_db, drop_db, get_db
from edurate.models import (
    Organization, User, Teacher, Term, FeedbackPeriod, Classroom, ClassroomMember
)
from edurate.models.user import UserRole
from edurate.services.classroom_service import generate_join_code
from edurate.utils.security import hash_password
import random

TEACHERS = [
    ('Ada Byron', 'Mathematics', 'Mathematics'),
    ('Grace Hopper', 'Computer Science', 'Mathematics'),
    ('Marie Curie', 'Chemistry', 'Science'),
    ('Rosalind Franklin', 'Biology', 'Science'),
    ('Toni Morrison', 'English', 'Humanities'),
]


def create_school(db):
    """Create the organization, its staff and a school head"""
    school = Organization(
        name='Lakeside High School',
        slug='lakeside-high',
        contact_email='office@lakeside.edu'
    )
    db.add(school)
    db.flush()
    
    admin = User(
        email='admin@lakeside.edu',
        password_hash=hash_password('Admin123!'),
        full_name='Admin User',
        role=UserRole.ADMIN,
        org_id=school.id
    )
    head = User(
        email='head@lakeside.edu',
        password_hash=hash_password('Head123!'),
        full_name='Principal Skinner',
        role=UserRole.SCHOOL_HEAD,
        grade_or_position='Principal',
        org_id=school.id
    )
    db.add_all([admin, head])
    
    teachers = []
    for i, (name, subject, department) in enumerate(TEACHERS):
        user = User(
            email=f'teacher{i+1}@lakeside.edu',
            password_hash=hash_password('Teacher123!'),
            full_name=name,
            role=UserRole.TEACHER,
            grade_or_position=subject,
            org_id=school.id
        )
        db.add(user)
        db.flush()
        
        teacher = Teacher(
            user_id=user.id,
            org_id=school.id,
            full_name=name,
            subject=subject,
            department=department
        )
        db.add(teacher)
        teachers.append(teacher)
    
    db.commit()
    return school, teachers


def create_term(db, school, teachers):
    """Create a term with two feedback periods and one classroom per teacher"""
    term = Term(
        org_id=school.id,
        name='Fall 2026',
        start_date=date(2026, 9, 1),
        end_date=date(2026, 12, 18),
        active_status=True
    )
    db.add(term)
    db.flush()
    
    classrooms = []
    for teacher in teachers:
        classroom = Classroom(
            org_id=school.id,
            teacher_id=teacher.id,
            term_id=term.id,
            subject=teacher.subject,
            grade_level=random.choice(['9', '10', '11', '12']),
            join_code=generate_join_code()
        )
        db.add(classroom)
        classrooms.append(classroom)
    
    midterm = FeedbackPeriod(
        term_id=term.id,
        name='Midterm Feedback',
        start_date=date(2026, 10, 12),
        end_date=date(2026, 10, 30),
        active_status=True,
        classrooms=classrooms
    )
    final = FeedbackPeriod(
        term_id=term.id,
        name='End of Term Feedback',
        start_date=date(2026, 12, 1),
        end_date=date(2026, 12, 18),
        active_status=False,
        classrooms=classrooms
    )
    db.add_all([midterm, final])
    db.commit()
    
    return term, classrooms


def create_students(db, school, classrooms):
    """Create students and enroll each in a few classrooms"""
    students = []
    for i in range(20):
        student = User(
            email=f'student{i+1}@lakeside.edu',
            password_hash=hash_password('Student123!'),
            full_name=f'Student {i+1}',
            role=UserRole.STUDENT,
            grade_or_position=random.choice(['9', '10', '11', '12']),
            org_id=school.id
        )
        db.add(student)
        students.append(student)
    db.flush()
    
    memberships = 0
    for student in students:
        for classroom in random.sample(classrooms, 3):
            db.add(ClassroomMember(classroom_id=classroom.id, student_id=student.id))
            memberships += 1
    
    db.commit()
    print(f"Created {memberships} classroom memberships")
    
    return students


def main():
    """Main seeding function"""
    print("Dropping existing database...")
    drop_db()
    
    print("Initializing new database...")
    init_db()
    
    with get_db() as db:
        print("Creating school...")
        school, teachers = create_school(db)
        
        print("Creating term, periods and classrooms...")
        term, classrooms = create_term(db, school, teachers)
        
        print("Creating students...")
        students = create_students(db, school, classrooms)
        
        join_codes = [(c.subject, c.join_code) for c in classrooms]
    
    print("\nDatabase seeded successfully!")
    print("Created:")
    print("- 1 Admin user (admin@lakeside.edu / Admin123!)")
    print("- 1 School head (head@lakeside.edu / Head123!)")
    print(f"- {len(teachers)} Teachers (teacherN@lakeside.edu / Teacher123!)")
    print(f"- {len(students)} Students (studentN@lakeside.edu / Student123!)")
    print("- 1 active term with an open midterm feedback period")
    for subject, code in join_codes:
        print(f"  {subject}: join code {code}")


if __name__ == "__main__":
    main()
