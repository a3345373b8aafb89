"""
Patient analytics for the admin dashboard.

All aggregation happens in memory over the patients and appointments of one
hospital (optionally one branch).  Helpers are plain functions so they can be
unit tested without a database; :func:`patient_analytics` loads the rows and
:func:`build_patient_analytics` reduces them.
"""
from __future__ import annotations

import re
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from django.utils import timezone

from hms.models import Appointment, Patient

TIME_RANGE_DAYS = {
    '30days': 30,
    '3months': 90,
    '6months': 180,
    '1year': 365,
}
DEFAULT_RANGE_DAYS = 365

DAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']
DAY_NAMES_SHORT = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']

GENERAL_CONSULTATION = 'General Consultation'
CUSTOM_DIAGNOSIS = 'Custom Diagnosis'

# Checked in order, first substring hit wins. Includes Hindi/Gujarati transliterations.
DISEASE_PATTERNS = [
    ('cold', 'Cold'),
    ('sardi', 'Cold'),
    ('cough', 'Cough'),
    ('khasi', 'Cough'),
    ('kukhar', 'Cough'),
    ('sore throat', 'Sore Throat'),
    ('throat pain', 'Sore Throat'),
    ('runny nose', 'Cold'),
    ('nasal congestion', 'Cold'),
    ('blocked nose', 'Cold'),
    ('sneezing', 'Cold'),
    ('fever', 'Fever'),
    ('bukhar', 'Fever'),
    ('temperature', 'Fever'),
    ('high temperature', 'Fever'),
    ('flu', 'Flu'),
    ('influenza', 'Flu'),
    ('body ache', 'Flu'),
    ('body pain', 'Flu'),
    ('muscle pain', 'Flu'),
    ('asthma', 'Asthma'),
    ('breathing', 'Breathing Issues'),
    ('shortness of breath', 'Breathing Issues'),
    ('wheezing', 'Asthma'),
    ('stomach', 'Stomach Issues'),
    ('diarrhea', 'Diarrhea'),
    ('diarrhoea', 'Diarrhea'),
    ('vomiting', 'Vomiting'),
    ('nausea', 'Nausea'),
    ('constipation', 'Constipation'),
    ('indigestion', 'Indigestion'),
    ('gas', 'Gas'),
    ('acidity', 'Acidity'),
    ('rash', 'Skin Rash'),
    ('itching', 'Skin Issues'),
    ('allergy', 'Allergy'),
    ('hives', 'Skin Rash'),
    ('headache', 'Headache'),
    ('migraine', 'Migraine'),
    ('pain', 'Pain'),
    ('joint pain', 'Joint Pain'),
    ('back pain', 'Back Pain'),
    ('infection', 'Infection'),
    ('uti', 'UTI'),
    ('urinary', 'UTI'),
    ('allergic', 'Allergy'),
    ('hay fever', 'Allergy'),
    ('pollen', 'Allergy'),
    ('heat', 'Heat Related'),
    ('dehydration', 'Dehydration'),
    ('sunburn', 'Sunburn'),
    ('anxiety', 'Anxiety'),
    ('stress', 'Stress'),
    ('depression', 'Depression'),
]

# (keywords, bucket) for the symptom -> diagnosis correlation
SYMPTOM_KEYWORDS = [
    (('pain', 'ache'), 'Pain'),
    (('fever',), 'Fever'),
    (('cough',), 'Cough'),
    (('cold', 'runny nose'), 'Cold/Runny Nose'),
    (('throat', 'sore throat'), 'Sore Throat'),
    (('ear', 'hearing'), 'Ear Issues'),
    (('nose', 'nasal'), 'Nasal Issues'),
    (('breathing', 'breath'), 'Breathing Issues'),
    (('dizziness', 'vertigo'), 'Dizziness/Vertigo'),
    (('headache',), 'Headache'),
]

KNOWN_AREAS = [
    'hathuka', 'valod', 'bardoli', 'surat', 'navsari', 'vadodara', 'ahmedabad',
    'bharuch', 'anand', 'vapi', 'valsad', 'gandhinagar', 'rajkot', 'jamnagar',
    'bhavnagar', 'mehsana', 'palanpur', 'patan', 'godhra', 'dahod', 'nadiad',
    'kalol', 'halol', 'modasa', 'himmatnagar', 'deesa',
    'unja', 'vyara', 'songadh', 'mahuva', 'veraval', 'porbandar', 'junagadh',
    'amreli', 'botad', 'dhoraji', 'gondal', 'jetpur', 'morbi', 'wankaner',
    'dhrangadhra', 'surendranagar', 'limbdi', 'chotila', 'sayla', 'lakhtar',
    'dasada', 'thangadh', 'dhandhuka', 'dholka', 'bavla', 'sanand', 'daskroi',
    'mandvi', 'anjar', 'bhuj', 'gandhidham', 'rapar', 'bhachau', 'mundra',
    'adipur', 'lakhpat', 'naliya', 'kachchh', 'kutch',
]
AREA_PATTERNS = [
    re.compile(r'([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\s*,\s*[A-Z][a-z]+'),
    re.compile(r'\bin\s+([A-Z][a-z]+)', re.IGNORECASE),
    re.compile(r'\bat\s+([A-Z][a-z]+)', re.IGNORECASE),
    re.compile(r'\bnear\s+([A-Z][a-z]+)', re.IGNORECASE),
]

AGE_GROUPS = [
    (18, '0-17 (Pediatric)'),
    (30, '18-29 (Young Adult)'),
    (45, '30-44 (Adult)'),
    (60, '45-59 (Middle Age)'),
]
SENIOR = '60+ (Senior)'
UNKNOWN = 'Unknown'


def days_in_range(time_range: str) -> int:
    return TIME_RANGE_DAYS.get(time_range, DEFAULT_RANGE_DAYS)


def calculate_age(dob, today: Optional[date]=None) -> Optional[int]:
    """Whole years since ``dob``; ``None`` when unknown, unparsable or in the future."""
    if not dob:
        return None
    if isinstance(dob, str):
        try:
            dob = date.fromisoformat(dob[:10])
        except ValueError:
            return None
    if isinstance(dob, datetime):
        dob = dob.date()
    today = today or timezone.localdate()
    age = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        age -= 1
    return age if age >= 0 else None


def age_group(age: Optional[int]) -> str:
    if age is None or age < 0:
        return UNKNOWN
    for upper, label in AGE_GROUPS:
        if age < upper:
            return label
    return SENIOR


def format_hour12(hour: int) -> str:
    if hour == 0:
        return '12 AM'
    if hour < 12:
        return f'{hour} AM'
    if hour == 12:
        return '12 PM'
    return f'{hour - 12} PM'


def season_for(month: int) -> str:
    if month >= 12 or month <= 2:
        return 'Winter'
    if 3 <= month <= 5:
        return 'Spring'
    if 6 <= month <= 8:
        return 'Summer'
    return 'Fall'


def categorize_disease(complaint: Optional[str]) -> str:
    if not complaint or not complaint.strip():
        return GENERAL_CONSULTATION
    lower = complaint.lower()
    for pattern, disease in DISEASE_PATTERNS:
        if pattern in lower:
            return disease
    words = ' '.join(complaint.split()[:3])
    return GENERAL_CONSULTATION if len(words) > 30 else words


def extract_area(address: Optional[str]) -> str:
    if not address or not address.strip():
        return UNKNOWN
    lower = address.lower().strip()
    for area in KNOWN_AREAS:
        if re.search(rf'\b{re.escape(area)}\b', lower):
            return ' '.join(w[:1].upper() + w[1:].lower() for w in area.split(' '))

    for pattern in AREA_PATTERNS:
        m = pattern.search(address)
        if m:
            extracted = re.sub(r'^(in|at|near)\s+', '', m.group(0), flags=re.IGNORECASE)
            extracted = re.sub(r',.*$', '', extracted).strip()
            if len(extracted) > 2:
                return extracted

    for word in re.split(r'[\s,]+', address):
        if len(word) > 2 and re.fullmatch(r'[A-Z][A-Za-z]*', word):
            return word
    return UNKNOWN


def parse_hour(time_str: Optional[str]) -> Optional[int]:
    if not time_str:
        return None
    try:
        hour = int(time_str.split(':')[0])
    except ValueError:
        return None
    return hour if 0 <= hour <= 23 else None


def day_name(d: date) -> str:
    # date.weekday() is Monday=0
    return DAY_NAMES[(d.weekday() + 1) % 7]


def _pct(count: int, total: int) -> float:
    return round(count / total * 100, 1) if total else 0.0


def _ranked(counts: Counter, total: int, limit: int, key: str) -> list[dict]:
    rows = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    return [{key: name, 'count': n, 'percentage': _pct(n, total)} for name, n in rows]


def _breakdown(groups: dict, label: str) -> list[dict]:
    out = []
    for group, diseases in groups.items():
        total = sum(diseases.values())
        if total > 0:
            out.append({
                label: group,
                'topDiseases': _ranked(diseases, total, 5, 'disease'),
                'totalAppointments': total,
            })
    return out


def _month_start(d: date, back: int) -> date:
    y, m = d.year, d.month - back
    while m <= 0:
        m += 12
        y -= 1
    return date(y, m, 1)


def _next_month(d: date) -> date:
    return date(d.year + 1, 1, 1) if d.month == 12 else date(d.year, d.month + 1, 1)


def _diagnoses_of(apt) -> list[str]:
    names = list(apt.final_diagnosis or [])
    if apt.custom_diagnosis:
        names.append(CUSTOM_DIAGNOSIS)
    return names


def symptoms_of(complaint: str) -> list[str]:
    lower = complaint.lower()
    found = [bucket for keywords, bucket in SYMPTOM_KEYWORDS if any(k in lower for k in keywords)]
    return found or [complaint[:50]]


def diagnosis_analytics(appointments: Iterable) -> dict:
    completed = [a for a in appointments if a.status == 'completed' and a.final_diagnosis]

    counts: Counter = Counter()
    monthly: dict[str, Counter] = defaultdict(Counter)
    symptom_cases: Counter = Counter()
    symptom_diagnoses: dict[str, Counter] = defaultdict(Counter)

    for apt in completed:
        names = _diagnoses_of(apt)
        counts.update(names)
        monthly[apt.appointment_date.strftime('%Y-%m')].update(names)
        if apt.chief_complaint:
            for symptom in symptoms_of(apt.chief_complaint):
                symptom_cases[symptom] += 1
                symptom_diagnoses[symptom].update(names)

    trends = []
    for key in sorted(monthly)[-12:]:
        label = datetime.strptime(key, '%Y-%m').strftime('%b %Y')
        trends.append({
            'monthKey': key,
            'month': label,
            'diagnoses': dict(monthly[key]),
            'totalCases': sum(monthly[key].values()),
        })

    correlation = []
    for symptom, cases in sorted(symptom_cases.items(), key=lambda kv: kv[1], reverse=True)[:10]:
        diag = symptom_diagnoses[symptom]
        correlation.append({
            'symptom': symptom,
            'topDiagnoses': _ranked(diag, sum(diag.values()), 5, 'diagnosis'),
            'totalCases': cases,
        })

    return {
        'mostCommonDiagnoses': _ranked(counts, sum(counts.values()), 15, 'diagnosis'),
        'diagnosisTrends': trends,
        'symptomDiagnosisCorrelation': correlation,
        'totalDiagnosedAppointments': len(completed),
    }


def build_patient_analytics(patients: list, appointments: list, *, time_range: str='1year', now=None) -> dict:
    """Reduce patient and appointment rows into the dashboard payload.

    ``appointments`` should include every appointment of the scope; the time
    range is applied here (on creation date) because the active patient count
    looks at the last 90 days regardless of the selected range.
    """
    now = now or timezone.now()
    today = timezone.localdate(now) if timezone.is_aware(now) else now.date()
    days = days_in_range(time_range)
    if time_range in TIME_RANGE_DAYS:
        cutoff = now - timedelta(days=days)
        filtered = [a for a in appointments if a.created_at >= cutoff]
    else:
        filtered = list(appointments)

    thirty_days_ago = now - timedelta(days=30)
    ninety_days_ago = today - timedelta(days=90)
    patients_by_id = {p.id: p for p in patients}
    total_patients = len(patients)
    new_patients = sum(1 for p in patients if p.created_at and p.created_at >= thirty_days_ago)

    visit_counts: Counter = Counter()
    last_visit: dict = {}
    for apt in filtered:
        visit_counts[apt.patient_id] += 1
        if apt.patient_id not in last_visit or apt.appointment_date > last_visit[apt.patient_id]:
            last_visit[apt.patient_id] = apt.appointment_date

    with_visits = len(visit_counts)
    returning = sum(1 for c in visit_counts.values() if c >= 2)
    avg_visits = (len(filtered) / with_visits) * (365 / days) if with_visits else 0
    retention = (returning / with_visits) * 100 if with_visits else 0

    gender: Counter = Counter()
    ages: Counter = Counter()
    blood: Counter = Counter()
    patient_age_group = {}
    for p in patients:
        gender[p.gender or UNKNOWN] += 1
        group = age_group(calculate_age(p.date_of_birth, today))
        patient_age_group[p.id] = group
        ages[group] += 1
        if p.blood_group:
            blood[p.blood_group.upper()] += 1

    top_visiting = []
    for patient_id, count in sorted(visit_counts.items(), key=lambda kv: kv[1], reverse=True)[:10]:
        p = patients_by_id.get(patient_id)
        top_visiting.append({
            'patientId': patient_id,
            'patientName': (p.full_name if p else '') or UNKNOWN,
            'visitCount': count,
            'lastVisit': last_visit[patient_id].isoformat(),
        })

    monthly_growth = []
    created_dates = [timezone.localdate(p.created_at) for p in patients if p.created_at]
    for back in range(11, -1, -1):
        start = _month_start(today, back)
        end = _next_month(start)
        monthly_growth.append({
            'month': start.strftime('%b %Y'),
            'newPatients': sum(1 for d in created_dates if start <= d < end),
            'totalPatients': sum(1 for d in created_dates if d < end),
        })

    active_ids = {
        a.patient_id for a in appointments
        if a.appointment_date >= ninety_days_ago and a.status != 'cancelled'
    }

    hours: Counter = Counter()
    day_counts: Counter = Counter()
    seasonal = {season: Counter() for season in ('Winter', 'Spring', 'Summer', 'Fall')}
    by_age: dict[str, Counter] = defaultdict(Counter)
    by_gender: dict[str, Counter] = defaultdict(Counter)
    for apt in filtered:
        hour = parse_hour(apt.appointment_time)
        if hour is not None:
            hours[hour] += 1
        day_counts[day_name(apt.appointment_date)] += 1
        if not apt.chief_complaint:
            continue
        disease = categorize_disease(apt.chief_complaint)
        seasonal[season_for(apt.appointment_date.month)][disease] += 1
        p = patients_by_id.get(apt.patient_id)
        if p:
            by_age[patient_age_group[p.id]][disease] += 1
            by_gender[p.gender or UNKNOWN][disease] += 1

    # ties keep the earliest hour / the first weekday seen
    peak_hour, peak_hour_count = 9, 0
    for hour in sorted(hours):
        if hours[hour] > peak_hour_count:
            peak_hour, peak_hour_count = hour, hours[hour]
    peak_day, peak_day_count = 'Monday', 0
    for name, count in day_counts.items():
        if count > peak_day_count:
            peak_day, peak_day_count = name, count

    areas: Counter = Counter(extract_area(p.address) for p in patients)
    area_rows = [
        {'area': area, 'patientCount': n, 'percentage': _pct(n, total_patients)}
        for area, n in sorted(areas.items(), key=lambda kv: kv[1], reverse=True)
    ]

    return {
        'timeRange': time_range,
        'totalPatients': total_patients,
        'newPatients': new_patients,
        'returningPatients': returning,
        'averageVisitsPerYear': round(avg_visits, 1),
        'patientRetentionRate': round(retention, 1),
        'demographicDistribution': {
            'gender': dict(gender),
            'ageGroups': dict(ages),
            'bloodGroups': dict(blood),
        },
        'topVisitingPatients': top_visiting,
        'monthlyGrowth': monthly_growth,
        'activePatients': len(active_ids),
        'inactivePatients': total_patients - len(active_ids),
        'totalAppointments': len(filtered),
        'peakVisitingHour': {'hour': peak_hour, 'hour12': format_hour12(peak_hour), 'count': peak_hour_count},
        'peakVisitingDay': {
            'day': peak_day,
            'dayShort': DAY_NAMES_SHORT[DAY_NAMES.index(peak_day)],
            'count': peak_day_count,
        },
        'seasonalDiseaseTrends': _breakdown(seasonal, 'season'),
        'ageWiseDiseaseBreakdown': _breakdown(by_age, 'ageGroup'),
        'genderWiseDiseaseBreakdown': _breakdown(by_gender, 'gender'),
        'areaWiseDistribution': area_rows,
        **diagnosis_analytics(filtered),
    }


def patient_analytics(hospital, *, branch_id: Optional[int]=None, time_range: str='1year', now=None) -> dict:
    patients = Patient.objects.filter(hospital=hospital)
    appointments = Appointment.objects.filter(hospital=hospital)
    if branch_id:
        patients = patients.filter(default_branch_id=branch_id)
        appointments = appointments.filter(branch_id=branch_id)
    appointments = appointments.only(
        'id', 'patient_id', 'appointment_date', 'appointment_time', 'status', 'chief_complaint',
        'final_diagnosis', 'custom_diagnosis', 'created_at',
    )
    return build_patient_analytics(list(patients), list(appointments), time_range=time_range, now=now)


def cache_key(hospital_id: int, branch_id: Optional[int], time_range: str) -> str:
    return f'analytics:h={hospital_id}:b={branch_id or "all"}:r={time_range}'
