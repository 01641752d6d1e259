import pytest
from django.urls import reverse

from core.models import EducationalContent

pytestmark = pytest.mark.django_db


@pytest.fixture
def content(db):
    def make(**kwargs):
        data = {'category': 'cvd_prevention', 'title_en': 'Protect your heart', 'title_fil': 'Ingatan ang puso',
                'description_en': 'Basics', 'description_fil': 'Mga batayan', 'content_en': 'Walk daily.',
                'content_fil': 'Maglakad araw-araw.'}
        data.update(kwargs)
        return EducationalContent.objects.create(**data)
    return make


def test_list_returns_both_languages_by_default(client_for, nurse, content):
    content()
    content(title_en='Hidden draft', published=False)
    r = client_for(nurse).get(reverse('education-list'))
    assert r.status_code == 200
    assert len(r.data['data']) == 1
    item = r.data['data'][0]
    assert item['title_en'] == 'Protect your heart'
    assert item['title_fil'] == 'Ingatan ang puso'
    assert 'title' not in item


def test_list_language_and_search(client_for, nurse, content):
    content()
    content(category='nutrition', title_en='Less salt', title_fil='Bawasan ang asin')
    r = client_for(nurse).get(reverse('education-list'), {'language': 'fil', 'search': 'asin'})
    assert [c['title'] for c in r.data['data']] == ['Bawasan ang asin']
    assert r.data['data'][0]['language'] == 'fil'


def test_per_page_capped_at_200(client_for, nurse):
    r = client_for(nurse).get(reverse('education-list'), {'per_page': 201})
    assert r.status_code == 422


def test_detail_counts_views(client_for, nurse, content):
    c = content()
    client = client_for(nurse)
    client.get(reverse('education-detail', args=[c.id]))
    r = client.get(reverse('education-detail', args=[c.id]))
    assert r.data['data']['views'] == 2


def test_unpublished_detail_is_404(client_for, nurse, content):
    c = content(published=False)
    assert client_for(nurse).get(reverse('education-detail', args=[c.id])).status_code == 404


def test_categories_and_stats(client_for, nurse, content):
    content(views=10)
    content(category='nutrition', views=3)
    client = client_for(nurse)
    categories = {c['value']: c['count'] for c in client.get(reverse('education-categories')).data['data']}
    assert categories['cvd_prevention'] == 1
    assert categories['exercise'] == 0
    stats = client.get(reverse('education-stats')).data['data']
    assert stats['total_content'] == 2
    assert stats['total_views'] == 13
    assert stats['most_viewed'][0]['views'] == 10
