from src.hilos_app.repository import add_customer, authenticate_user
from src.hilos_app.services.ventas import set_cart_quantity
from src.hilos_app.state import AppState


def test_seller_name_follows_logged_in_user(session_factory, session):
    state = AppState(session_factory=session_factory)
    assert state.seller_name == "Freddy STG"

    add_customer(session, nombre="Ana Vendedora", dni="60000001", perfil="Vendedor")
    user = authenticate_user(session, nombre="Ana Vendedora", dni="60000001")
    state.login(user)
    assert state.current_user is user
    assert state.seller_name == "Ana Vendedora"

    state.logout()
    assert state.current_user is None
    assert state.seller_name == "Freddy STG"


def test_login_and_logout_reset_sale_draft(session_factory, customer, conos):
    state = AppState(session_factory=session_factory)
    state.draft.select_customer(customer)
    set_cart_quantity(state.draft.cart, conos[0], 1)
    state.logout()
    assert state.draft.customer is None
    assert len(state.draft.cart) == 0


def test_each_state_has_its_own_draft(session_factory, conos):
    a = AppState(session_factory=session_factory)
    b = AppState(session_factory=session_factory)
    set_cart_quantity(a.draft.cart, conos[0], 1)
    assert len(b.draft.cart) == 0
