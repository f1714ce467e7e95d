"""
User administration endpoints. Every route requires the ADMIN role.
"""

from fastapi import APIRouter, Depends, Request

from api.auth import require_admin
from api.dependencies import get_user_service
from api.models import FormView, UserListResponse, UserResponse, role_options
from api.responses import enforce, redirect
from catalog.models import User
from catalog.user_service import UserService
from catalog.validation import ensure_exists
from utilities.logger import RequestLogger

router = APIRouter(tags=["Users"], dependencies=[Depends(require_admin)])


@router.get("/users", response_model=UserListResponse)
async def get_user_list(user_service: UserService = Depends(get_user_service)):
    """List all users with their roles."""
    users = await user_service.get_user_list()
    return UserListResponse(users=[UserResponse.from_user(user) for user in users])


@router.get("/users/{user_id}", response_model=FormView)
async def get_user_edit_page(user_id: int, user_service: UserService = Depends(get_user_service)):
    """Role form of a user."""
    user = await user_service.get_user(user_id)
    enforce(ensure_exists(user, "User", user_id))

    return FormView(
        view="user/edit",
        action=f"/users/{user.id}",
        values={
            "username": user.username,
            "roles": sorted(role.value for role in user.roles),
        },
        roles=role_options()
    )


@router.post("/users/{user_id}")
async def update_user_roles(
    user_id: int,
    request: Request,
    current_user: User = Depends(require_admin),
    user_service: UserService = Depends(get_user_service)
):
    """
    Replace a user's roles with the ticked role checkboxes.
    An empty selection leaves the roles unchanged.
    """
    log = RequestLogger("user.roles", current_user.id).bind_context(target_user_id=user_id)
    user = await user_service.get_user(user_id)
    enforce(ensure_exists(user, "User", user_id), log)

    form = await request.form()
    selected_roles = user_service.get_selected_roles_from_form(form)
    if selected_roles:
        await user_service.update_user_roles(user, selected_roles)
        log.log_mutation("user", user.id, "update_roles")
    else:
        log.log_skipped("empty role selection")

    return redirect(f"/users/{user.id}")
