import pytest
from django.urls import reverse

from hms.services import knowledge


def test_list_types():
    types = knowledge.list_types()
    assert [t['type'] for t in types] == ['ear', 'nose', 'throat', 'dental', 'kidney', 'lungs', 'skeleton']
    ear = types[0]
    assert ear['parts'] == 10
    assert ear['diseases'] > 0


def test_resolve_part():
    assert knowledge.resolve_part('ear', 'Eardrum') == 'Eardrum'
    assert knowledge.resolve_part('ear', 'eardrum') == 'Eardrum'
    assert knowledge.resolve_part('ear', 'Object_2') == 'Ear_Canal'
    assert knowledge.resolve_part('ear', 'mesh_12') == 'Eardrum'
    assert knowledge.resolve_part('lungs', 'Windpipe') == 'Trachea'
    assert knowledge.resolve_part('lungs', 'left_lung') == 'Lungs'
    assert knowledge.resolve_part('ear', 'Object_99') is None
    assert knowledge.resolve_part('ear', '') is None


def test_unknown_lookups_raise():
    with pytest.raises(LookupError):
        knowledge.get_part('ear', 'Elbow')
    with pytest.raises(LookupError):
        knowledge.anatomy('heart')
    with pytest.raises(LookupError):
        knowledge.get_disease('ear', 'not_a_disease')


def test_get_part_and_disease():
    part = knowledge.get_part('ear', 'Object_3')
    assert part['key'] == 'Eardrum'
    assert part['partName'] == 'Eardrum (Tympanic Membrane)'

    disease = knowledge.get_disease('ear', 'otitis_media')
    assert disease['partKey'] == 'Eardrum'
    assert disease['anatomyType'] == 'ear'


def test_search_diseases():
    hits = knowledge.search_diseases('swimmer')
    assert [(h['anatomyType'], h['id']) for h in hits] == [('ear', 'otitis_externa')]
    assert knowledge.search_diseases('swimmer', types=['throat']) == []
    assert knowledge.search_diseases('   ') == []


def test_search_ent_diagnoses():
    assert [d['name'] for d in knowledge.search_ent_diagnoses('tonsillitis')] == [
        'Acute Tonsillitis', 'Chronic Tonsillitis',
    ]
    assert [d['name'] for d in knowledge.search_ent_diagnoses('h66')] == ['Otitis Media']
    assert len(knowledge.search_ent_diagnoses(category='ear')) == 4
    assert len(knowledge.search_ent_diagnoses()) == 12


def test_models_for_specialization():
    assert knowledge.models_for_specialization('Dentist') == ['dental']
    assert knowledge.models_for_specialization('Oral Surgeon') == ['dental']
    assert knowledge.models_for_specialization('ENT Specialist') == ['ear', 'throat']
    assert knowledge.models_for_specialization('Pediatrician') == ['ear', 'throat']
    assert knowledge.models_for_specialization('Ophthalmologist') == []
    assert knowledge.models_for_specialization('Cardiologist') == []
    assert knowledge.models_for_specialization(None) == ['ear', 'throat', 'dental']


@pytest.mark.django_db
def test_knowledge_endpoints(doctor_user, client_for):
    client = client_for(doctor_user)

    r = client.get(reverse('anatomy_part', args=['ear', 'Object_2']))
    assert r.status_code == 200
    assert r.data['data']['key'] == 'Ear_Canal'

    assert client.get(reverse('anatomy_detail', args=['heart'])).status_code == 404
    assert client.get(reverse('disease_detail', args=['ear', 'nope'])).status_code == 404

    r = client.get(reverse('disease_search'), {'q': 'swimmer', 'types': 'ear,nose'})
    assert len(r.data['data']) == 1
    assert client.get(reverse('disease_search'), {'q': 'x', 'types': 'ear,heart'}).status_code == 400

    r = client.get(reverse('ent_diagnoses'), {'category': 'ear'})
    assert r.data['customOption'] == 'OTHER_CUSTOM'
    assert len(r.data['data']) == 4
    assert client.get(reverse('ent_diagnoses'), {'category': 'eye'}).status_code == 400

    r = client.get(reverse('anatomy_models'), {'specialization': 'Dentist'})
    assert [m['type'] for m in r.data['data']] == ['dental']


@pytest.mark.django_db
def test_knowledge_requires_login(client):
    assert client.get(reverse('anatomy_types')).status_code in (401, 403)
