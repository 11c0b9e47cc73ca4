"""Initial schema - Pet Shop

Revision ID: 0000_initial
Revises:
Create Date: 2026-10-19

Complete database schema including:
- Tenancy (tenants, tenant_settings, users_profile, tenant_invites)
- Clients & pets
- Services (bath_grooming_appointments, hotel_stays) and sales
- Fiscal (companies, config_fiscal, notas_fiscais)
- Integrations (google_calendar_tokens, campaign_dispatches)
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision = '0000_initial'
down_revision = None
branch_labels = None
depends_on = None


def _tenant_scoped():
    return [
        sa.Column('id', UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('tenant_id', UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade():
    # =========================================================================
    # TENANCY
    # =========================================================================

    op.create_table(
        'tenants',
        sa.Column('id', UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('nome', sa.String(255), nullable=False),
        sa.Column('ativo', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    module_flags = [
        ('mod_petshop', 'true'),
        ('mod_hotel', 'true'),
        ('mod_clinica', 'false'),
        ('mod_produtos', 'false'),
        ('mod_pdv', 'true'),
        ('mod_caixa', 'false'),
        ('mod_comissao', 'false'),
        ('mod_financeiro_avancado', 'false'),
        ('mod_dashboard_completo', 'false'),
        ('mod_estoque', 'false'),
        ('mod_marketing', 'false'),
    ]
    op.create_table(
        'tenant_settings',
        sa.Column('id', UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('tenant_id', UUID(as_uuid=True), nullable=False),
        sa.Column('business_name', sa.String(255), server_default='PetSaaS', nullable=False),
        sa.Column('plan_type', sa.String(20), server_default='hotel', nullable=False),
        *[sa.Column(name, sa.Boolean(), server_default=sa.text(default), nullable=False) for name, default in module_flags],
        sa.Column('dias_inatividade', sa.Integer(), server_default='40', nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('tenant_id'),
    )

    op.create_table(
        'users_profile',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', UUID(as_uuid=True), nullable=True),
        sa.Column('nome', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('role', sa.String(20), server_default='employee', nullable=False),
        sa.Column('status', sa.String(20), server_default='active', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_users_profile_tenant_id', 'users_profile', ['tenant_id'])

    op.create_table(
        'tenant_invites',
        *_tenant_scoped(),
        sa.Column('invite_code', sa.String(64), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('role', sa.String(20), server_default='employee', nullable=False),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_by', UUID(as_uuid=True), nullable=True),
        sa.Column('accepted_by', UUID(as_uuid=True), nullable=True),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invite_code', name='uq_tenant_invites_code'),
    )
    op.create_index('ix_tenant_invites_tenant_id', 'tenant_invites', ['tenant_id'])
    op.create_index('idx_tenant_invites_tenant_status', 'tenant_invites', ['tenant_id', 'status'])

    # =========================================================================
    # CLIENTS & PETS
    # =========================================================================

    op.create_table(
        'clients',
        *_tenant_scoped(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('whatsapp', sa.String(20), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('cpf', sa.String(14), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('neighborhood', sa.String(120), nullable=True),
        sa.Column('city', sa.String(120), nullable=True),
        sa.Column('zip_code', sa.String(9), nullable=True),
        sa.Column('last_purchase', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_interaction', sa.DateTime(timezone=True), nullable=True),
        sa.Column('tipo_campanha', sa.String(20), server_default='sem_compra', nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_clients_tenant_id', 'clients', ['tenant_id'])
    op.create_index('idx_clients_tenant_campanha', 'clients', ['tenant_id', 'tipo_campanha'])
    op.create_index('idx_clients_tenant_last_purchase', 'clients', ['tenant_id', 'last_purchase'])

    op.create_table(
        'pets',
        *_tenant_scoped(),
        sa.Column('client_id', UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('species', sa.String(20), server_default='dog', nullable=False),
        sa.Column('breed', sa.String(120), nullable=True),
        sa.Column('size', sa.String(20), nullable=True),
        sa.Column('coat_type', sa.String(20), nullable=True),
        sa.Column('weight', sa.Numeric(6, 2), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_pets_tenant_id', 'pets', ['tenant_id'])
    op.create_index('ix_pets_client_id', 'pets', ['client_id'])

    # =========================================================================
    # SERVICES & SALES
    # =========================================================================

    op.create_table(
        'bath_grooming_appointments',
        *_tenant_scoped(),
        sa.Column('client_id', UUID(as_uuid=True), nullable=False),
        sa.Column('pet_id', UUID(as_uuid=True), nullable=False),
        sa.Column('start_datetime', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_datetime', sa.DateTime(timezone=True), nullable=False),
        sa.Column('service_type', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), server_default='agendado', nullable=False),
        sa.Column('kanban_status', sa.String(20), server_default='espera', nullable=False),
        sa.Column('price', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('payment_status', sa.String(20), server_default='pendente', nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('google_event_id', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['pet_id'], ['pets.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_bath_grooming_appointments_tenant_id', 'bath_grooming_appointments', ['tenant_id'])
    op.create_index('idx_appointments_tenant_start', 'bath_grooming_appointments', ['tenant_id', 'start_datetime'])
    op.create_index('idx_appointments_google_event', 'bath_grooming_appointments', ['google_event_id'])

    op.create_table(
        'hotel_stays',
        *_tenant_scoped(),
        sa.Column('client_id', UUID(as_uuid=True), nullable=False),
        sa.Column('pet_id', UUID(as_uuid=True), nullable=False),
        sa.Column('check_in', sa.DateTime(timezone=True), nullable=False),
        sa.Column('check_out', sa.DateTime(timezone=True), nullable=False),
        sa.Column('daily_rate', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('total_price', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('status', sa.String(20), server_default='reservado', nullable=False),
        sa.Column('is_creche', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('payment_status', sa.String(20), server_default='pendente', nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('google_event_id', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['pet_id'], ['pets.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_hotel_stays_tenant_id', 'hotel_stays', ['tenant_id'])
    op.create_index('idx_hotel_stays_tenant_check_in', 'hotel_stays', ['tenant_id', 'check_in'])
    op.create_index('idx_hotel_stays_google_event', 'hotel_stays', ['google_event_id'])

    op.create_table(
        'sales',
        *_tenant_scoped(),
        sa.Column('client_id', UUID(as_uuid=True), nullable=True),
        sa.Column('subtotal', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('discount', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('payment_method', sa.String(20), nullable=False),
        sa.Column('payment_status', sa.String(20), server_default='pago', nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_sales_tenant_id', 'sales', ['tenant_id'])
    op.create_index('idx_sales_tenant_created', 'sales', ['tenant_id', 'created_at'])

    # =========================================================================
    # FISCAL
    # =========================================================================

    op.create_table(
        'companies',
        *_tenant_scoped(),
        sa.Column('cnpj', sa.String(18), nullable=True),
        sa.Column('razao_social', sa.String(255), nullable=True),
        sa.Column('nome_fantasia', sa.String(255), nullable=True),
        sa.Column('inscricao_estadual', sa.String(30), nullable=True),
        sa.Column('logradouro', sa.String(255), nullable=True),
        sa.Column('numero', sa.String(20), nullable=True),
        sa.Column('bairro', sa.String(120), nullable=True),
        sa.Column('municipio', sa.String(120), nullable=True),
        sa.Column('uf', sa.String(2), nullable=True),
        sa.Column('cep', sa.String(9), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_companies_tenant_id', 'companies', ['tenant_id'])

    op.create_table(
        'config_fiscal',
        *_tenant_scoped(),
        sa.Column('company_id', UUID(as_uuid=True), nullable=False),
        sa.Column('ambiente', sa.String(20), server_default='homologacao', nullable=False),
        sa.Column('tipo_nota', sa.String(20), server_default='nfce', nullable=False),
        sa.Column('serie', sa.String(5), server_default='1', nullable=True),
        sa.Column('numero_atual', sa.Integer(), server_default='0', nullable=False),
        sa.Column('regime_tributario', sa.String(2), server_default='1', nullable=True),
        sa.Column('csosn_servicos', sa.String(5), server_default='102', nullable=True),
        sa.Column('emitir_automatico', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('company_id'),
    )
    op.create_index('ix_config_fiscal_tenant_id', 'config_fiscal', ['tenant_id'])

    op.create_table(
        'notas_fiscais',
        *_tenant_scoped(),
        sa.Column('company_id', UUID(as_uuid=True), nullable=False),
        sa.Column('sale_id', UUID(as_uuid=True), nullable=True),
        sa.Column('tipo', sa.String(10), server_default='nfce', nullable=False),
        sa.Column('numero', sa.Integer(), nullable=False),
        sa.Column('serie', sa.String(5), server_default='1', nullable=False),
        sa.Column('chave', sa.String(60), nullable=True),
        sa.Column('status', sa.String(20), server_default='processando', nullable=False),
        sa.Column('referencia_focus', sa.String(120), nullable=True),
        sa.Column('xml', sa.Text(), nullable=True),
        sa.Column('pdf_url', sa.Text(), nullable=True),
        sa.Column('erro_sefaz', sa.Text(), nullable=True),
        sa.Column('ambiente', sa.String(20), server_default='homologacao', nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('company_id', 'serie', 'numero', name='uq_notas_fiscais_company_serie_numero'),
    )
    op.create_index('ix_notas_fiscais_tenant_id', 'notas_fiscais', ['tenant_id'])
    op.create_index('idx_notas_fiscais_tenant_status', 'notas_fiscais', ['tenant_id', 'status'])

    # =========================================================================
    # INTEGRATIONS
    # =========================================================================

    op.create_table(
        'google_calendar_tokens',
        *_tenant_scoped(),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('refresh_token', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('calendar_id', sa.String(255), server_default='primary', nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', name='uq_google_calendar_tokens_tenant'),
    )
    op.create_index('ix_google_calendar_tokens_tenant_id', 'google_calendar_tokens', ['tenant_id'])

    op.create_table(
        'campaign_dispatches',
        *_tenant_scoped(),
        sa.Column('campanha', sa.String(255), nullable=False),
        sa.Column('media_type', sa.String(10), server_default='text', nullable=False),
        sa.Column('criterios', JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('dias_inatividade', sa.Integer(), nullable=False),
        sa.Column('total_clientes', sa.Integer(), server_default='0', nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('sent_by', UUID(as_uuid=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_campaign_dispatches_tenant_id', 'campaign_dispatches', ['tenant_id'])


def downgrade():
    for table in (
        'campaign_dispatches',
        'google_calendar_tokens',
        'notas_fiscais',
        'config_fiscal',
        'companies',
        'sales',
        'hotel_stays',
        'bath_grooming_appointments',
        'pets',
        'clients',
        'tenant_invites',
        'users_profile',
        'tenant_settings',
        'tenants',
    ):
        op.drop_table(table)
