from hms.models import User


def make_user(username, role, hospital=None, password='P@ssw0rd1'):
    user = User.objects.create_user(
        username=username, email=username if '@' in username else f'{username}@example.com',
        password=password, role=role, active_hospital=hospital,
    )
    if hospital:
        user.hospitals.add(hospital)
    return user
