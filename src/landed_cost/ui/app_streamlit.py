"""
Streamlit UI for the Landed Cost Estimator.

Features:
- Tabbed interface for Create Estimate, History and Dashboard
- Editable product grid with default margin
- Save as draft or completed
- Export to CSV
- Cost optimisation suggestions
"""
import streamlit as st
import pandas as pd
import sys
from pathlib import Path
from datetime import date, datetime

# Add src to path for imports
src_path = Path(__file__).parent.parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from landed_cost.engine import calculate, CalculationInput, CalculationResults, ProductLine
from landed_cost.config.settings import get_settings, DESTINATIONS, ESTIMATE_STATUSES, USER_ROLES
from landed_cost.config.logging_config import setup_logging
from landed_cost.services.estimates_service import Estimate, EstimatesService, EstimateValidationError
from landed_cost.services.export_service import cost_breakdown_frame, product_breakdown_frame, export_csv
from landed_cost.services.reporting import dashboard_summary, recommend_optimizations, optimization_totals


st.set_page_config(
    page_title="Landed Cost Estimator",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_service():
    """Get cached estimates service."""
    setup_logging()
    return EstimatesService(get_settings().estimates_file)


@st.cache_resource
def get_settings_cached():
    """Get cached settings."""
    return get_settings()


try:
    service = get_service()
    settings = get_settings_cached()
except Exception as e:
    st.error(f"System Error: {e}")
    st.stop()


def money(value: float) -> str:
    return f"${value:,.2f}"


def default_products_frame(default_margin: float) -> pd.DataFrame:
    return pd.DataFrame([
        {'Product': name, 'Include': False, 'Quantity (MT)': 0.0, 'Unit Price': 0.0, 'Margin %': default_margin}
        for name in settings.products
    ])


def products_from_frame(df: pd.DataFrame) -> list[ProductLine]:
    return [
        ProductLine(
            name=str(row['Product']),
            quantity=float(row['Quantity (MT)'] or 0),
            unit_price=float(row['Unit Price'] or 0),
            included=bool(row['Include']),
            margin=float(row['Margin %'] or 0),
        )
        for _, row in df.iterrows()
        if str(row['Product']).strip()
    ]


def render_results(results: CalculationResults):
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Procurement", money(results.total_procurement_cost))
    m2.metric("Invoice Value", money(results.invoice_value))
    m3.metric("Importer Cost", money(results.importer_total_cost))
    m4.metric("Retailer Price", money(results.retailer_price))
    st.caption(
        f"Weighted margin {results.weighted_margin:.2f}% | "
        f"Total margin {results.total_margin_percentage:.2f}%"
    )

    c1, c2 = st.columns([1, 1.6], gap="large")
    with c1:
        st.markdown("##### Cost Breakdown")
        st.dataframe(
            cost_breakdown_frame(results).style.format({'Amount': money}),
            use_container_width=True,
            hide_index=True,
        )
    with c2:
        st.markdown("##### Product Breakdown (per MT)")
        st.dataframe(
            product_breakdown_frame(results).style.format({
                'Unit Cost': money, 'Invoice Price': money,
                'Distributor Price': money, 'Retailer Price': money,
            }),
            use_container_width=True,
            hide_index=True,
        )


# ============================================================================
# SIDEBAR: User Context
# ============================================================================
with st.sidebar:
    st.header("👤 User")
    with st.container(border=True):
        created_by = st.text_input("Name", value="current-user")
        user_role = st.selectbox("Role", USER_ROLES)

    st.divider()
    st.caption(f"Store: {settings.estimates_file or 'in memory'}")


# ============================================================================
# MAIN CONTENT: TABBED INTERFACE
# ============================================================================
st.title("Landed Cost Estimator")
st.caption(f"v1.0 | {datetime.now().strftime('%Y-%m-%d')}")

tab1, tab2, tab3 = st.tabs(["🧮 Create Estimate", "📚 History", "📊 Dashboard"])


# ============================================================================
# TAB 1: CREATE ESTIMATE
# ============================================================================
with tab1:
    if 'products_df' not in st.session_state:
        st.session_state.products_df = default_products_frame(settings.default_margin)

    st.subheader("Container Information")
    c1, c2, c3 = st.columns(3)
    container_id = c1.text_input("Container ID", placeholder="CONT-2024-001")
    destination = c2.selectbox("Destination Country", DESTINATIONS)
    estimate_date = c3.date_input("Estimate Date", value=date.today())

    st.subheader("Products")
    m1, m2 = st.columns([1, 4])
    with m1:
        default_margin = st.number_input("Default Margin %", min_value=0.0, value=settings.default_margin, step=0.5)
    with m2:
        st.write("")
        st.write("")
        if st.button("Apply default margin to all products"):
            st.session_state.products_df['Margin %'] = default_margin
            st.rerun()

    edited_df = st.data_editor(
        st.session_state.products_df,
        use_container_width=True,
        num_rows="dynamic",
        column_config={
            "Product": st.column_config.TextColumn("Product"),
            "Include": st.column_config.CheckboxColumn("Include"),
            "Quantity (MT)": st.column_config.NumberColumn("Quantity (MT)", min_value=0.0, step=1.0),
            "Unit Price": st.column_config.NumberColumn("Unit Price ($/MT)", min_value=0.0, step=1.0),
            "Margin %": st.column_config.NumberColumn("Margin %", min_value=0.0, step=0.5),
        },
        hide_index=True,
        key="products_editor"
    )

    o_col, d_col = st.columns(2, gap="large")
    with o_col:
        with st.container(border=True):
            st.markdown("##### 🚜 Origin Costs")
            transport_cost = st.number_input("Transport", min_value=0.0, step=50.0)
            packing_cost = st.number_input("Packing", min_value=0.0, step=50.0)
            fumigation_cost = st.number_input("Fumigation", min_value=0.0, step=50.0)
            customs_clearance_cost = st.number_input("Customs Clearance", min_value=0.0, step=50.0)
            export_duty_rate = st.number_input("Export Duty %", min_value=0.0, step=0.5)
    with d_col:
        with st.container(border=True):
            st.markdown("##### 🚢 Destination Costs")
            freight_cost = st.number_input("Freight", min_value=0.0, step=50.0)
            import_duty = st.number_input("Import Duty", min_value=0.0, step=50.0)
            destination_customs_clearance = st.number_input("Destination Customs Clearance", min_value=0.0, step=50.0)
            destination_transport = st.number_input("Destination Transport", min_value=0.0, step=50.0)

    t1, t2 = st.columns(2)
    distributor_margin = t1.number_input("Distributor Margin %", min_value=0.0, value=settings.distributor_margin, step=0.5)
    retailer_margin = t2.number_input("Retailer Margin %", min_value=0.0, value=settings.retailer_margin, step=0.5)

    products = products_from_frame(edited_df)
    calc_input = CalculationInput(
        products=products,
        transport_cost=transport_cost,
        packing_cost=packing_cost,
        fumigation_cost=fumigation_cost,
        customs_clearance_cost=customs_clearance_cost,
        export_duty_rate=export_duty_rate,
        freight_cost=freight_cost,
        import_duty=import_duty,
        destination_customs_clearance=destination_customs_clearance,
        destination_transport=destination_transport,
        distributor_margin=distributor_margin,
        retailer_margin=retailer_margin,
    )

    st.divider()
    b1, b2, b3, b4 = st.columns(4)
    if b1.button("🧮 Calculate", type="primary", use_container_width=True):
        st.session_state.results = calculate(calc_input)
        st.toast("Estimate has been calculated successfully")

    def save(status: str):
        estimate = Estimate(
            container_id=container_id.strip(),
            destination=destination,
            estimate_date=estimate_date.isoformat(),
            status=status,
            products=products,
            default_margin=default_margin,
            created_by=created_by,
            user_role=user_role,
            **{attr: getattr(calc_input, attr) for attr in CalculationInput.WIRE_KEYS},
        )
        try:
            saved = service.create_estimate(estimate)
        except EstimateValidationError as e:
            for error in e.errors:
                st.error(error)
            return
        except Exception:
            st.error("Failed to save estimate")
            return
        st.session_state.results = CalculationResults.from_dict(saved.calculation_results)
        st.success(f"Estimate #{saved.id} saved as {status}")

    if b2.button("💾 Save Draft", use_container_width=True):
        save("draft")
    if b3.button("✅ Save Completed", use_container_width=True):
        save("completed")
    if b4.button("🗑️ Reset", use_container_width=True):
        st.session_state.pop('results', None)
        st.session_state.products_df = default_products_frame(settings.default_margin)
        st.rerun()

    results = st.session_state.get('results')
    if results is not None:
        st.subheader("Results")
        render_results(results)

        st.download_button(
            "📥 CSV",
            data=export_csv(results, container_id or "UNSAVED", destination),
            file_name=f"estimate_{container_id or 'unsaved'}.csv",
            mime="text/csv",
        )

        with st.expander("💡 Cost Optimisation"):
            target_margin = st.number_input("Target Margin %", min_value=0.0, value=20.0, step=1.0)
            recs = recommend_optimizations(results, target_margin=target_margin)
            if recs:
                st.dataframe(pd.DataFrame([{
                    'Category': r.category,
                    'Priority': r.priority,
                    'Impact': money(r.impact),
                    'Implementation': money(r.implementation_cost),
                    'Timeframe': r.timeframe,
                    'Description': r.description,
                } for r in recs]), use_container_width=True, hide_index=True)
                totals = optimization_totals(recs)
                k1, k2, k3 = st.columns(3)
                k1.metric("Potential Savings", money(totals['total_savings']))
                k2.metric("Implementation Cost", money(totals['implementation_cost']))
                k3.metric("Net Benefit", money(totals['net_benefit']))
            else:
                st.info("No recommendations for this estimate.")


# ============================================================================
# TAB 2: HISTORY
# ============================================================================
with tab2:
    st.subheader("📚 Estimates")

    col1, col2 = st.columns([3, 1])
    with col1:
        search_term = st.text_input("Search", placeholder="Container ID or destination...", label_visibility="collapsed")
    with col2:
        status_filter = st.selectbox("Status", ("all",) + ESTIMATE_STATUSES, label_visibility="collapsed")

    estimates = service.list_estimates(
        status=None if status_filter == "all" else status_filter,
        query=search_term or None,
    )

    if not estimates:
        st.info("No estimates match your filters" if search_term or status_filter != "all" else "No estimates yet")
    else:
        st.dataframe(pd.DataFrame([{
            'ID': e.id,
            'Container': e.container_id,
            'Destination': e.destination,
            'Date': e.estimate_date,
            'Status': e.status,
            'Products': sum(1 for p in e.products if p.included),
            'Importer Total': money(float((e.calculation_results or {}).get('importerTotalCost') or 0)),
        } for e in estimates]), use_container_width=True, hide_index=True)
        st.caption(f"Showing {len(estimates)} estimate(s)")

        selected = st.selectbox(
            "Estimate",
            options=[e.id for e in estimates],
            format_func=lambda i: next(f"#{e.id} {e.container_id} → {e.destination}" for e in estimates if e.id == i),
        )
        a1, a2, a3 = st.columns(3)
        if a1.button("📋 Duplicate", use_container_width=True):
            try:
                copy = service.duplicate_estimate(selected)
                st.toast(f"Created draft #{copy.id}")
                st.rerun()
            except Exception:
                st.error("Failed to duplicate estimate")
        if a2.button("🗑️ Delete", use_container_width=True):
            try:
                service.delete_estimate(selected)
                st.toast(f"Deleted estimate #{selected}")
                st.rerun()
            except Exception:
                st.error("Failed to delete estimate")
        if a3.button("📦 Archive", use_container_width=True):
            try:
                service.update_estimate(selected, {'status': 'archived'})
                st.rerun()
            except Exception:
                st.error("Failed to update estimate")

        chosen = service.get_estimate(selected)
        if chosen and chosen.calculation_results:
            with st.expander("📊 View Breakdown"):
                render_results(CalculationResults.from_dict(chosen.calculation_results))


# ============================================================================
# TAB 3: DASHBOARD
# ============================================================================
with tab3:
    st.header("Dashboard")
    summary = dashboard_summary(service.list_estimates())

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Estimates", summary['total_estimates'])
    c2.metric("Completed", summary['completed'])
    c3.metric("Total Value", money(summary['total_value']))
    c4.metric("Avg Margin", f"{summary['average_margin']:.1f}%")

    st.divider()
    st.subheader("By Status")
    st.dataframe(
        pd.DataFrame([{'Status': k, 'Estimates': v} for k, v in summary['by_status'].items()]),
        use_container_width=True,
        hide_index=True,
    )
