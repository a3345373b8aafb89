"""
Management command to populate the database with demo data.
"""
import random
from datetime import timedelta

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.utils import timezone

from hms.models import Appointment, Branch, Campaign, Doctor, Hospital, Patient, User
from hms.services.campaigns import slugify
from hms.services.patients import generate_patient_id

FIRST_NAMES = ['Aarav', 'Diya', 'Vihaan', 'Ananya', 'Kabir', 'Isha', 'Reyansh', 'Meera', 'Arjun', 'Saanvi']
LAST_NAMES = ['Patel', 'Shah', 'Mehta', 'Desai', 'Joshi', 'Trivedi', 'Parikh', 'Modi']
ADDRESSES = [
    '12 Shanti Nagar, Satellite, Ahmedabad',
    'B-4 Green Park, Vastrapur, Ahmedabad',
    '7 Lake View Society, Adajan, Surat',
    'Near Railway Station, Vadodara, Gujarat',
    '21 Sunrise Flats, Maninagar, Ahmedabad',
]
COMPLAINTS = [
    'Fever and body ache since two days',
    'Ear pain and discharge',
    'Sore throat with cough',
    'Tooth pain while chewing',
    'Blocked nose and sinus headache',
    'Follow up for diabetes',
    '',
]
DIAGNOSES = ['Acute otitis media', 'Pharyngitis', 'Allergic rhinitis', 'Dental caries', 'Viral fever']
TIMES = ['09:00', '09:30', '10:15', '11:00', '12:30', '16:00', '17:45']


class Command(BaseCommand):
    help = 'Populate database with demo data'

    def add_arguments(self, parser):
        parser.add_argument('--patients', type=int, default=40)

    def handle(self, *args, **options):
        self.stdout.write('Creating demo data...')
        hospitals = self.create_hospitals()
        self.create_staff(hospitals)
        for hospital in hospitals:
            branches = self.create_branches(hospital)
            doctors = self.create_doctors(hospital)
            patients = self.create_patients(hospital, branches, options['patients'])
            self.create_appointments(hospital, branches, doctors, patients)
            self.create_campaigns(hospital)
        self.stdout.write(self.style.SUCCESS('Demo data created.'))

    def create_hospitals(self):
        rows = [
            {'code': 'HMS-AHD', 'name': 'Harmony Medical Services Ahmedabad', 'phone': '+917900000001'},
            {'code': 'HMS-SRT', 'name': 'Harmony Medical Services Surat', 'phone': '+917900000002'},
        ]
        hospitals = []
        for data in rows:
            hospital, _ = Hospital.objects.get_or_create(code=data['code'], defaults=data)
            hospitals.append(hospital)
            self.stdout.write(f'Hospital: {hospital.name}')
        return hospitals

    def create_staff(self, hospitals):
        superuser, _ = User.objects.get_or_create(
            username='super',
            defaults={'email': 'super@example.com', 'role': 'super_admin', 'password': make_password('123456')},
        )
        for i, hospital in enumerate(hospitals, start=1):
            for role in ('admin', 'receptionist'):
                username = f'{role}{i}'
                user, _ = User.objects.get_or_create(
                    username=username,
                    defaults={
                        'email': f'{username}@example.com',
                        'role': role,
                        'password': make_password('123456'),
                        'active_hospital': hospital,
                    },
                )
                user.hospitals.add(hospital)
                self.stdout.write(f'User: {username} -> {hospital.code}')

    def create_branches(self, hospital):
        branches = []
        for name in ('Main', 'City Clinic'):
            branch, _ = Branch.objects.get_or_create(hospital=hospital, name=name)
            branches.append(branch)
        return branches

    def create_doctors(self, hospital):
        specs = [('Nikhil', 'Rao', 'ENT Specialist'), ('Pooja', 'Iyer', 'Dentist'), ('Rahul', 'Nair', 'General Physician')]
        doctors = []
        for first, last, spec in specs:
            doctor, _ = Doctor.objects.get_or_create(
                hospital=hospital, first_name=first, last_name=last,
                defaults={'specialization': spec, 'email': f'{first.lower()}.{last.lower()}@example.com'},
            )
            doctors.append(doctor)
        return doctors

    def create_patients(self, hospital, branches, count):
        patients = list(Patient.objects.filter(hospital=hospital))
        now = timezone.now()
        today = timezone.localdate()
        for _ in range(max(0, count - len(patients))):
            dob = today - timedelta(days=random.randint(2, 85) * 365 + random.randint(0, 364))
            patients.append(Patient.objects.create(
                hospital=hospital,
                patient_id=generate_patient_id(hospital),
                first_name=random.choice(FIRST_NAMES),
                last_name=random.choice(LAST_NAMES),
                phone=f'9{random.randint(100000000, 999999999)}',
                gender=random.choice(['Male', 'Female', 'Other']),
                blood_group=random.choice(['a+', 'B+', 'O+', 'ab-', 'O-']),
                date_of_birth=dob,
                address=random.choice(ADDRESSES),
                status=random.choice(['active', 'active', 'active', 'inactive']),
                default_branch=random.choice(branches),
                created_at=now - timedelta(days=random.randint(0, 400)),
            ))
        self.stdout.write(f'{hospital.code}: {len(patients)} patients')
        return patients

    def create_appointments(self, hospital, branches, doctors, patients):
        if Appointment.objects.filter(hospital=hospital).exists():
            return
        today = timezone.localdate()
        now = timezone.now()
        for patient in patients:
            for _ in range(random.randint(0, 4)):
                offset = random.randint(-300, 14)
                status = 'completed' if offset < 0 else random.choice(['confirmed', 'pending', 'whatsapp_pending'])
                if offset < 0 and random.random() < 0.15:
                    status = random.choice(['cancelled', 'doctor_cancelled', 'not_attended'])
                Appointment.objects.create(
                    hospital=hospital,
                    patient=patient,
                    doctor=random.choice(doctors),
                    branch=random.choice(branches),
                    appointment_date=today + timedelta(days=offset),
                    appointment_time=random.choice(TIMES),
                    status=status,
                    chief_complaint=random.choice(COMPLAINTS),
                    final_diagnosis=random.sample(DIAGNOSES, 1) if status == 'completed' else [],
                    created_at=now + timedelta(days=min(offset, 0) - random.randint(0, 10)),
                )
        self.stdout.write(f'{hospital.code}: appointments created')

    def create_campaigns(self, hospital):
        title = 'Free ENT Screening Week'
        Campaign.objects.get_or_create(
            hospital=hospital,
            slug=slugify(title),
            defaults={
                'title': title,
                'content': '<p>Walk in for a <strong>free</strong> ear, nose and throat check-up this week.</p>',
                'cta_text': 'Book Now',
                'cta_href': '/book-appointment',
                'audience': 'patients',
                'status': 'published',
                'priority': 5,
            },
        )
